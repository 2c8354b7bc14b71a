"""Persisted client state.

All cross-restart state lives under three fixed storage keys:
- the full session collection (in display order)
- the last-used default model
- the theme preference
"""

import logging
from typing import Literal

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from ..errors import PersistenceError
from ..persistence.base import KeyValueStorage
from .models import ChatSession
from .transforms import clear_stale_streaming

logger = logging.getLogger(__name__)

SESSIONS_KEY = "synapse_sessions_v1"
DEFAULT_MODEL_KEY = "synapse_default_model"
THEME_KEY = "synapse_theme"

DEFAULT_MODEL = "openai"
DEFAULT_THEME = "dark"

Theme = Literal["dark", "light"]

_session_list = TypeAdapter(list[ChatSession])


def dump_sessions(sessions: list[ChatSession]) -> str:
    """Serialize a session collection to JSON."""
    return _session_list.dump_json(sessions).decode("utf-8")


def load_sessions(raw: str) -> list[ChatSession]:
    """Deserialize a session collection.

    Raises:
        PersistenceError: If ``raw`` is not a valid session collection
    """
    try:
        return _session_list.validate_json(raw)
    except ValidationError as e:
        raise PersistenceError(f"Saved sessions are unreadable: {e.error_count()} error(s)") from e


class PersistedState(BaseModel):
    """Snapshot of everything restored at startup."""

    sessions: list[ChatSession] = Field(default_factory=list)
    default_model: str = DEFAULT_MODEL
    theme: Theme = DEFAULT_THEME


class StateRepository:
    """Reads and writes PersistedState through a KeyValueStorage.

    Loading never fails: unreadable data is treated as "no saved state".
    Saving raises PersistenceError and leaves recovery to the caller.
    """

    def __init__(self, storage: KeyValueStorage):
        self._storage = storage

    @property
    def storage(self) -> KeyValueStorage:
        return self._storage

    def _read(self, key: str) -> str | None:
        try:
            return self._storage.get_item(key)
        except PersistenceError as e:
            logger.warning("Ignoring saved %s: %s", key, e.message)
            return None

    def load(self, default_model: str = DEFAULT_MODEL) -> PersistedState:
        """Restore state, reconciling messages left mid-stream by a crash."""
        sessions: list[ChatSession] = []
        raw_sessions = self._read(SESSIONS_KEY)
        if raw_sessions:
            try:
                sessions = [clear_stale_streaming(s) for s in load_sessions(raw_sessions)]
            except PersistenceError as e:
                logger.warning("Failed to parse sessions, starting empty: %s", e.message)

        theme = self._read(THEME_KEY)
        return PersistedState(
            sessions=sessions,
            default_model=self._read(DEFAULT_MODEL_KEY) or default_model,
            theme=theme if theme in ("dark", "light") else DEFAULT_THEME,
        )

    def save_sessions(self, sessions: list[ChatSession]) -> None:
        self._storage.set_item(SESSIONS_KEY, dump_sessions(sessions))

    def save_default_model(self, model: str) -> None:
        self._storage.set_item(DEFAULT_MODEL_KEY, model)

    def save_theme(self, theme: Theme) -> None:
        self._storage.set_item(THEME_KEY, theme)

    def clear(self) -> None:
        """Remove all saved state."""
        for key in (SESSIONS_KEY, DEFAULT_MODEL_KEY, THEME_KEY):
            self._storage.remove_item(key)
