"""Generation orchestrator: the state machine behind send, edit and regenerate.

Every user action follows the same path:
1. Read the session from the store and take its single-flight token
2. Commit the new history (optimistic update)
3. Append a streaming assistant placeholder
4. Fold completion chunks into the placeholder, in arrival order
5. Finalize the placeholder, or roll it back if the completion failed
6. Release the token on every exit path

All store updates are addressed by the session id captured in step 1.
"""

import asyncio
import logging
from contextlib import aclosing
from functools import partial

from ..llm.client import CompletionClient
from ..llm.models import ChatMessage
from ..sessions.models import ChatSession, Message, MessageRole
from ..sessions.store import SessionStore
from ..sessions.transforms import (
    append_chunk,
    append_placeholder,
    drop_last_message,
    finalize_message,
    make_placeholder,
    replace_history,
    rollback_message,
    truncate_and_edit,
)
from .state import GenerationResult, GenerationState, SessionGuard
from .title import TitleSummarizer

logger = logging.getLogger(__name__)


def to_chat_messages(history: list[Message], system_instruction: str | None = None) -> list[ChatMessage]:
    """Build the request message list for one completion.

    A non-blank system instruction is prepended as a system message for
    this request only; it is never added to the session history.
    """
    request = [
        ChatMessage(role=m.role.value, content=m.content, images=m.images or [])
        for m in history
    ]
    if system_instruction and system_instruction.strip():
        request.insert(0, ChatMessage(role=MessageRole.SYSTEM.value, content=system_instruction))
    return request


class ChatOrchestrator:
    """Turns user actions into committed message sequences.

    Args:
        store: Session store holding the conversation state
        client: Completion client used for generations
        titles: Title summarizer; one is created from ``client`` if omitted
    """

    def __init__(
        self,
        store: SessionStore,
        client: CompletionClient,
        titles: TitleSummarizer | None = None,
    ):
        self._store = store
        self._client = client
        self._titles = titles if titles is not None else TitleSummarizer(client, store)
        self._guard = SessionGuard()
        self._states: dict[str, GenerationState] = {}

    @property
    def store(self) -> SessionStore:
        return self._store

    def state(self, session_id: str) -> GenerationState:
        return self._states.get(session_id, GenerationState.IDLE)

    def is_generating(self, session_id: str) -> bool:
        return self._guard.is_held(session_id)

    async def join_background_tasks(self) -> None:
        """Wait for outstanding title generations."""
        await self._titles.join()

    def _resolve(self, session_id: str | None) -> ChatSession | None:
        if session_id is None:
            return self._store.ensure_current()
        return self._store.get(session_id)

    # ------------------------------------------------------------------
    # User actions
    # ------------------------------------------------------------------

    async def send(
        self,
        text: str,
        images: list[str] | None = None,
        session_id: str | None = None,
    ) -> GenerationResult | None:
        """Append a user message and generate a reply.

        Args:
            text: Message text (trimmed before use)
            images: Optional embedded image payloads
            session_id: Target session; the current one if omitted

        Returns:
            The generation outcome, or None if the send was ignored
            (empty input, unknown session, or a generation in flight)
        """
        text = text.strip()
        images = list(images or [])
        if not text and not images:
            return None

        session = self._resolve(session_id)
        if session is None:
            return None

        with self._guard.hold(session.id) as acquired:
            if not acquired:
                logger.info("Ignoring send: session %s is already generating", session.id)
                return None

            is_first = not session.messages
            model = self._store.model_for(session)
            user_message = Message(role=MessageRole.USER, content=text, images=images or None)
            history = [*session.messages, user_message]
            self._store.update(session.id, partial(replace_history, messages=history))

            if is_first and text:
                self._titles.schedule(session.id, text, model)

            return await self._generate(session.id, history, model, session.streaming_enabled)

    async def edit_message(
        self,
        message_id: str,
        content: str,
        session_id: str | None = None,
    ) -> GenerationResult | None:
        """Replace a user message's content and regenerate from there.

        Everything after the edited message is discarded.

        Returns:
            The generation outcome, or None if the edit was ignored
        """
        session = self._resolve(session_id)
        if session is None:
            return None

        with self._guard.hold(session.id) as acquired:
            if not acquired:
                logger.info("Ignoring edit: session %s is already generating", session.id)
                return None

            found = session.find_message(message_id)
            if found is None:
                return None

            index, message = found
            if message.role is not MessageRole.USER:
                logger.warning("Ignoring edit of %s message %s", message.role.value, message_id)
                return None
            if not content.strip() and not message.images:
                return None

            updated = self._store.update(session.id, partial(truncate_and_edit, index=index, content=content))
            if updated is None:
                return None

            return await self._generate(
                session.id,
                list(updated.messages),
                self._store.model_for(session),
                session.streaming_enabled,
            )

    async def regenerate(self, session_id: str | None = None) -> GenerationResult | None:
        """Replace the last assistant reply with a fresh generation.

        Returns:
            The generation outcome, or None if the last message is not an
            assistant reply or a generation is in flight
        """
        session = self._resolve(session_id)
        if session is None:
            return None

        with self._guard.hold(session.id) as acquired:
            if not acquired:
                logger.info("Ignoring regenerate: session %s is already generating", session.id)
                return None

            if not session.messages or session.messages[-1].role is not MessageRole.ASSISTANT:
                return None

            updated = self._store.update(session.id, drop_last_message)
            if updated is None:
                return None

            return await self._generate(
                session.id,
                list(updated.messages),
                self._store.model_for(session),
                session.streaming_enabled,
            )

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    async def _generate(
        self,
        session_id: str,
        history: list[Message],
        model: str,
        streaming: bool,
    ) -> GenerationResult:
        """Run one generation over ``history``; the caller holds the token."""
        placeholder = make_placeholder(model)
        self._states[session_id] = GenerationState.PENDING
        self._store.update(
            session_id,
            partial(append_placeholder, history=history, placeholder=placeholder),
        )

        session = self._store.get(session_id)
        request = to_chat_messages(history, session.system_instruction if session else None)

        outcome = GenerationState.FAILED
        error: str | None = None
        try:
            if not streaming:
                self._states[session_id] = GenerationState.STREAMING

            async with aclosing(self._client.stream(request, model, streaming)) as chunks:
                async for chunk in chunks:
                    if self._states[session_id] is GenerationState.PENDING:
                        self._states[session_id] = GenerationState.STREAMING
                    self._store.update(
                        session_id,
                        partial(append_chunk, message_id=placeholder.id, chunk=chunk),
                    )

            self._store.update(session_id, partial(finalize_message, message_id=placeholder.id))
            outcome = GenerationState.FINALIZED
        except asyncio.CancelledError:
            self._store.update(session_id, partial(rollback_message, message_id=placeholder.id))
            raise
        except Exception as e:
            logger.error("Generation failed in session %s: %s", session_id, e)
            self._store.update(session_id, partial(rollback_message, message_id=placeholder.id))
            error = str(e) or "Failed to generate response"
        finally:
            self._states.pop(session_id, None)

        return GenerationResult(
            session_id=session_id,
            message_id=placeholder.id,
            state=outcome,
            content=self._content_of(session_id, placeholder.id),
            error=error,
        )

    def _content_of(self, session_id: str, message_id: str) -> str:
        session = self._store.get(session_id)
        found = session.find_message(message_id) if session else None
        return found[1].content if found else ""
