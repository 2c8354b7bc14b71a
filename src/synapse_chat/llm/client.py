"""Completion client used by the generation orchestrator.

Wraps an LLMProvider with the recovery policy of the chat client:
- Model listing never fails; a fixed fallback list is substituted
- Title generation never fails; an empty title means "leave unchanged"
- Completions fail loudly (NetworkError / RequestError) before any chunk
"""

import logging
import re
from collections.abc import AsyncIterator, Callable
from contextlib import aclosing

from .base import LLMProvider
from .models import ChatMessage

logger = logging.getLogger(__name__)

FALLBACK_MODELS = ["openai", "mistral", "llama"]

TITLE_INSTRUCTION = (
    "Generate a concise, 3-5 word title for this chat session based on the "
    "user's message. Do not use quotes. Return only the title."
)

_SURROUNDING_QUOTES = re.compile(r"^[\"']|[\"']$")


def merge_default_model(models: list[str], default: str | None) -> list[str]:
    """Ensure the default model is selectable.

    Args:
        models: Fetched model identifiers
        default: Last-used model; put first when missing from ``models``

    Returns:
        Model list containing ``default`` (never empty)
    """
    merged = list(models) or ["openai"]
    if default and default not in merged:
        merged.insert(0, default)
    return merged


class CompletionClient:
    """Issues completion requests for role-tagged message lists.

    Args:
        provider: Provider that owns the HTTP connection
    """

    def __init__(self, provider: LLMProvider):
        self._provider = provider

    @property
    def provider(self) -> LLMProvider:
        return self._provider

    async def fetch_models(self) -> list[str]:
        """Fetch available model identifiers, falling back on any failure."""
        try:
            models = await self._provider.list_models()
        except Exception as e:
            logger.warning("Failed to fetch models, using defaults: %s", e)
            return list(FALLBACK_MODELS)

        if not models:
            logger.warning("Model list was empty, using defaults")
            return list(FALLBACK_MODELS)
        return models

    async def generate_title(self, user_text: str, model: str) -> str:
        """Derive a short session title from the first user message.

        Returns:
            The title with surrounding quotes stripped, or "" on any failure
        """
        if not user_text or not user_text.strip():
            return ""

        messages = [
            ChatMessage(role="system", content=TITLE_INSTRUCTION),
            ChatMessage(role="user", content=user_text),
        ]
        try:
            response = await self._provider.chat_completion(messages, model=model)
        except Exception as e:
            logger.warning("Failed to generate title: %s", e)
            return ""

        title = response.content.strip()
        return _SURROUNDING_QUOTES.sub("", title) if title else ""

    async def stream(
        self,
        messages: list[ChatMessage],
        model: str,
        streaming: bool = True,
    ) -> AsyncIterator[str]:
        """Yield completion text for ``messages``.

        Streaming mode yields each delta as it arrives. Buffered mode yields
        the whole content once (even when empty).

        Raises:
            NetworkError: On transport failure
            RequestError: On a non-2xx response, before anything is yielded
        """
        if not streaming:
            response = await self._provider.chat_completion(messages, model=model)
            yield response.content
            return

        stream = await self._provider.chat_completion_stream(messages, model=model)
        async with aclosing(stream):
            async for chunk in stream:
                yield chunk

        if stream.finish_reason:
            logger.debug("Completion finished: %s", stream.finish_reason)

    async def complete(
        self,
        messages: list[ChatMessage],
        model: str,
        on_chunk: Callable[[str], None],
        streaming: bool = True,
    ) -> None:
        """Deliver completion text to ``on_chunk`` in arrival order."""
        async with aclosing(self.stream(messages, model, streaming)) as chunks:
            async for chunk in chunks:
                on_chunk(chunk)

    async def close(self) -> None:
        await self._provider.close()
