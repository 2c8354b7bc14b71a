from abc import ABC, abstractmethod
from typing import Any

from .models import ChatMessage, LLMResponse, StreamingResponse


class LLMProvider(ABC):
    """Abstract base class for completion providers.

    This module hides the design decision of which completion endpoint is used.
    Implementations must handle provider-specific details like:
    - HTTP client setup and the static bearer credential
    - Request/response format conversion
    - Translating transport failures into NetworkError
    - Raising RequestError for non-2xx statuses before any chunk is delivered

    Supports async context manager protocol for proper resource cleanup:
        async with provider:
            response = await provider.chat_completion(messages, model="openai")
        # Automatically cleaned up
    """

    @abstractmethod
    async def list_models(self) -> list[str]:
        """List the model identifiers offered by the endpoint.

        Returns:
            Flat list of model identifiers

        Raises:
            NetworkError: If the endpoint cannot be reached
            RequestError: If the endpoint answers with a non-2xx status
        """
        pass

    @abstractmethod
    async def chat_completion(
        self,
        messages: list[ChatMessage],
        model: str,
        **kwargs: Any
    ) -> LLMResponse:
        """Generate a buffered chat completion.

        Args:
            messages: List of chat messages forming the conversation history
            model: Model identifier
            **kwargs: Provider-specific request fields

        Returns:
            LLMResponse containing the full generated content

        Raises:
            NetworkError: On transport failure
            RequestError: On a non-2xx response
        """
        pass

    @abstractmethod
    async def chat_completion_stream(
        self,
        messages: list[ChatMessage],
        model: str,
        **kwargs: Any
    ) -> StreamingResponse:
        """Generate a streaming chat completion.

        Args:
            messages: List of chat messages forming the conversation history
            model: Model identifier
            **kwargs: Provider-specific request fields

        Returns:
            StreamingResponse that yields text chunks. The request is issued
            lazily on first iteration; errors surface from iteration.
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close any open connections or resources."""
        pass

    async def __aenter__(self) -> "LLMProvider":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit with automatic cleanup.

        Note: Suppresses "Event loop is closed" errors during cleanup.
        This is a known harmless race condition in httpx/anyio cleanup:
        https://github.com/encode/httpx/issues/914
        """
        try:
            await self.close()
        except RuntimeError as e:
            if "Event loop is closed" not in str(e):
                raise
