from collections.abc import AsyncIterator
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class StreamingResponse:
    """Wrapper for streaming completions that captures the finish reason.

    Acts as an async iterator for text chunks while storing the
    finish reason reported by the last record of the stream.

    Usage:
        stream = await provider.chat_completion_stream(messages)
        async for chunk in stream:
            print(chunk, end="")
        # After iteration, the finish reason is available
        print(stream.finish_reason)  # "stop", "length", ...
    """

    def __init__(self, async_iter: AsyncIterator[str]):
        """Initialize with an async iterator of text chunks.

        Args:
            async_iter: Async iterator yielding text chunks
        """
        self._iter = async_iter
        self._finish_reason: str | None = None

    @property
    def finish_reason(self) -> str | None:
        """Get the finish reason (available after iteration completes)."""
        return self._finish_reason

    def set_finish_reason(self, reason: str) -> None:
        """Set the finish reason (called by the transport reader)."""
        self._finish_reason = reason

    def __aiter__(self) -> "StreamingResponse":
        """Return self as async iterator."""
        return self

    async def __anext__(self) -> str:
        """Get next chunk from the underlying iterator."""
        return await self._iter.__anext__()

    async def aclose(self) -> None:
        """Close the underlying iterator, releasing the network response."""
        aclose = getattr(self._iter, "aclose", None)
        if aclose is not None:
            await aclose()


class ChatMessage(BaseModel):
    """A role-tagged message as sent to the completion endpoint."""

    model_config = ConfigDict(frozen=True)

    role: str = Field(description="Role of the message sender: 'user', 'assistant', or 'system'")
    content: str = Field(description="Text content of the message")
    images: list[str] = Field(
        default_factory=list,
        description="Embedded image payloads (data URLs or http URLs)"
    )

    def to_provider_format(self) -> dict[str, Any]:
        """Convert to the OpenAI-compatible wire shape.

        Messages carrying images become multi-part content; all others
        keep a plain string body.
        """
        if not self.images:
            return {"role": self.role, "content": self.content}

        parts: list[dict[str, Any]] = [{"type": "text", "text": self.content}]
        parts.extend(
            {"type": "image_url", "image_url": {"url": image}}
            for image in self.images
        )
        return {"role": self.role, "content": parts}


class LLMResponse(BaseModel):
    """Buffered (non-streaming) completion result."""

    model_config = ConfigDict(frozen=True)

    content: str = Field(description="Generated text content")
    model: str = Field(description="Model that generated the response")
    usage: dict[str, Any] | None = Field(
        default=None,
        description="Token usage information"
    )
