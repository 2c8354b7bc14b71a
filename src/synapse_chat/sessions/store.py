"""Session store: the single source of truth rendered by the UI.

Owns the mapping from session id to ChatSession plus the "current" pointer
and the user preferences. Every mutation is applied synchronously, persisted,
and then announced to subscribers. Generation code targets sessions by id,
never through the current pointer, so switching sessions mid-stream cannot
misroute chunks.
"""

import logging
from collections.abc import Callable

from ..errors import PersistenceError
from ..persistence.base import KeyValueStorage
from .models import ChatSession, new_session
from .repository import DEFAULT_MODEL, DEFAULT_THEME, StateRepository, Theme
from .transforms import SessionTransform

logger = logging.getLogger(__name__)

Listener = Callable[["SessionStore"], None]


class SessionStore:
    """Ordered session collection with atomic, persisted updates.

    Insertion order is display order; new sessions go first.

    Args:
        repository: Persistence gateway for the collection and preferences
        default_model: Model used when nothing was saved yet
    """

    def __init__(self, repository: StateRepository, default_model: str = DEFAULT_MODEL):
        self._repository = repository
        self._sessions: dict[str, ChatSession] = {}
        self._current_id: str | None = None
        self._default_model = default_model
        self._theme: Theme = DEFAULT_THEME
        self._listeners: list[Listener] = []

    @classmethod
    def open(cls, storage: KeyValueStorage, default_model: str = DEFAULT_MODEL) -> "SessionStore":
        """Create a store over ``storage`` and restore its saved state."""
        store = cls(StateRepository(storage), default_model=default_model)
        store.load()
        return store

    # ------------------------------------------------------------------
    # Loading and initialization
    # ------------------------------------------------------------------

    def load(self) -> None:
        """Restore saved state, then apply the initialization policy."""
        state = self._repository.load(self._default_model)
        self._sessions = {session.id: session for session in state.sessions}
        self._default_model = state.default_model
        self._theme = state.theme
        self._current_id = None
        logger.info("Loaded %d session(s)", len(self._sessions))
        self.ensure_current()

    def ensure_current(self) -> ChatSession:
        """Guarantee a valid current session.

        An empty collection gets exactly one fresh session. A missing or
        stale current id falls back to the first session in order.
        """
        if not self._sessions:
            session = new_session(model=self._default_model)
            self._sessions[session.id] = session
            self._current_id = session.id
            self._commit()
            return session

        if self._current_id not in self._sessions:
            self._current_id = next(iter(self._sessions))
            self._notify()
        return self._sessions[self._current_id]

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def sessions(self) -> list[ChatSession]:
        return list(self._sessions.values())

    @property
    def current_id(self) -> str | None:
        return self._current_id

    @property
    def current(self) -> ChatSession | None:
        if self._current_id is None:
            return None
        return self._sessions.get(self._current_id)

    @property
    def default_model(self) -> str:
        return self._default_model

    @property
    def theme(self) -> Theme:
        return self._theme

    def get(self, session_id: str) -> ChatSession | None:
        return self._sessions.get(session_id)

    def model_for(self, session: ChatSession) -> str:
        """Model a generation in ``session`` should use."""
        return session.model or self._default_model

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def update(self, session_id: str, transform: SessionTransform) -> ChatSession | None:
        """Apply ``transform`` to one session and persist.

        Returns:
            The updated session, or None if ``session_id`` is unknown
        """
        session = self._sessions.get(session_id)
        if session is None:
            logger.debug("Ignoring update for unknown session %s", session_id)
            return None

        updated = transform(session)
        if updated.id != session_id:
            raise ValueError("Session transforms must not change the session id")

        self._sessions[session_id] = updated
        self._commit()
        return updated

    def update_current(self, transform: SessionTransform) -> ChatSession | None:
        """Apply ``transform`` to the current session only."""
        if self._current_id is None:
            return None
        return self.update(self._current_id, transform)

    def replace_all(self, sessions: list[ChatSession]) -> None:
        """Replace the whole collection, keeping ``sessions`` order."""
        self._sessions = {session.id: session for session in sessions}
        self._commit()
        self.ensure_current()

    def set_current(self, session_id: str) -> ChatSession:
        """Make ``session_id`` the current session.

        Raises:
            KeyError: If the session does not exist
        """
        if session_id not in self._sessions:
            raise KeyError(session_id)
        self._current_id = session_id
        self._notify()
        return self._sessions[session_id]

    def create_session(self, model: str | None = None) -> ChatSession:
        """Insert a fresh session first in order and make it current."""
        session = new_session(model=model or self._default_model)
        self._sessions = {session.id: session, **self._sessions}
        self._current_id = session.id
        self._commit()
        return session

    def delete_session(self, session_id: str) -> None:
        """Delete a session.

        If it was current, the session that followed it becomes current
        (or the one before it when it was last). Deleting the only
        session synthesizes a fresh one.
        """
        if session_id not in self._sessions:
            return

        order = list(self._sessions)
        position = order.index(session_id)
        del self._sessions[session_id]

        if self._current_id == session_id:
            remaining = order[:position] + order[position + 1:]
            self._current_id = remaining[min(position, len(remaining) - 1)] if remaining else None

        self._commit()
        self.ensure_current()

    def rename_session(self, session_id: str, title: str) -> ChatSession | None:
        title = title.strip()
        if not title:
            return None
        return self.update(session_id, lambda s: s.model_copy(update={"title": title}))

    def set_system_instruction(self, session_id: str, text: str) -> ChatSession | None:
        return self.update(session_id, lambda s: s.model_copy(update={"system_instruction": text}))

    def set_model(self, session_id: str, model: str) -> ChatSession | None:
        """Select ``model`` for a session; it also becomes the default."""
        updated = self.update(session_id, lambda s: s.model_copy(update={"model": model}))
        self.set_default_model(model)
        return updated

    def toggle_streaming(self, session_id: str) -> ChatSession | None:
        return self.update(
            session_id,
            lambda s: s.model_copy(update={"enable_streaming": not s.streaming_enabled}),
        )

    def set_default_model(self, model: str) -> None:
        self._default_model = model
        try:
            self._repository.save_default_model(model)
        except PersistenceError as e:
            logger.error("Failed to save default model: %s", e.message)
        self._notify()

    def set_theme(self, theme: Theme) -> None:
        self._theme = theme
        try:
            self._repository.save_theme(theme)
        except PersistenceError as e:
            logger.error("Failed to save theme: %s", e.message)
        self._notify()

    def toggle_theme(self) -> Theme:
        self.set_theme("light" if self._theme == "dark" else "dark")
        return self._theme

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` to run after every mutation.

        Returns:
            A callable that unregisters the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _commit(self) -> None:
        try:
            self._repository.save_sessions(self.sessions)
        except PersistenceError as e:
            logger.error("Failed to persist sessions: %s", e.message)
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Session store listener failed")
