"""Best-effort session titling.

After the first user message of a session, a one-shot completion derives a
short title. It runs as an independent background task: it never delays or
fails the send that triggered it, and an empty result leaves the title alone.
"""

import asyncio
import logging

from ..llm.client import CompletionClient
from ..sessions.store import SessionStore

logger = logging.getLogger(__name__)


class TitleSummarizer:
    """Schedules title generation and applies non-empty results."""

    def __init__(self, client: CompletionClient, store: SessionStore):
        self._client = client
        self._store = store
        self._tasks: set[asyncio.Task[str]] = set()

    @property
    def pending(self) -> int:
        """Number of title tasks still running."""
        return len(self._tasks)

    def schedule(self, session_id: str, user_text: str, model: str) -> asyncio.Task[str] | None:
        """Start titling ``session_id`` in the background.

        Returns:
            The task, or None when there is no text to summarize
        """
        if not user_text.strip():
            return None

        task = asyncio.create_task(
            self.summarize(session_id, user_text, model),
            name=f"title-{session_id}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def summarize(self, session_id: str, user_text: str, model: str) -> str:
        """Generate a title and rename the session if one came back."""
        title = await self._client.generate_title(user_text, model)
        if title:
            self._store.rename_session(session_id, title)
            logger.debug("Session %s titled %r", session_id, title)
        return title

    async def join(self) -> None:
        """Wait for all scheduled title tasks to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
