import logging
from collections.abc import AsyncIterator, Callable
from contextlib import aclosing
from typing import Any

import httpx

from ...errors import NetworkError, ParseError, RequestError
from ..base import LLMProvider
from ..models import ChatMessage, LLMResponse, StreamingResponse
from ..sse import iter_content_deltas

logger = logging.getLogger(__name__)


def normalize_model_list(data: Any) -> list[str]:
    """Normalize a models endpoint payload to a flat list of identifiers.

    Accepts either a flat array (of strings or records) or an object with a
    ``data`` array of ``{"id": ...}`` / ``{"name": ...}`` records.

    Raises:
        ParseError: If the payload has neither shape
    """
    if isinstance(data, dict) and isinstance(data.get("data"), list):
        entries = data["data"]
    elif isinstance(data, list):
        entries = data
    else:
        raise ParseError(str(data), "unrecognized models payload")

    models = []
    for entry in entries:
        if isinstance(entry, str):
            models.append(entry)
        elif isinstance(entry, dict):
            name = entry.get("name") or entry.get("id")
            if isinstance(name, str) and name:
                models.append(name)
    return models


class OpenAICompatibleProvider(LLMProvider):
    """Completion provider for any OpenAI-compatible HTTP endpoint.

    Hidden design decisions:
    - HTTP client initialization (httpx.AsyncClient)
    - Bearer authentication, attached only when a credential is configured
    - Request body shape and multi-part image content
    - Stream framing, delegated to the transport reader
    """

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        timeout: float = 60.0,
        **client_kwargs: Any
    ):
        """Initialize the provider.

        Args:
            base_url: Endpoint root; ``/models`` and ``/chat/completions`` are
                resolved against it
            api_key: Optional static bearer credential
            timeout: Request timeout in seconds
            **client_kwargs: Additional kwargs for httpx.AsyncClient
                (e.g. ``transport`` for tests)
        """
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"

        self._base_url = base_url
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=timeout,
            **client_kwargs
        )

    @property
    def base_url(self) -> str:
        """Get the endpoint root."""
        return self._base_url

    async def list_models(self) -> list[str]:
        """List model identifiers from ``<base>/models``."""
        try:
            response = await self._client.get("/models")
        except httpx.TransportError as e:
            raise NetworkError(f"Model list request failed: {e}") from e

        if not response.is_success:
            raise RequestError(response.status_code, response.text)

        try:
            data = response.json()
        except ValueError as e:
            raise ParseError(response.text, "invalid JSON") from e

        return normalize_model_list(data)

    async def chat_completion(
        self,
        messages: list[ChatMessage],
        model: str,
        **kwargs: Any
    ) -> LLMResponse:
        """Generate a buffered completion.

        Args:
            messages: Conversation history
            model: Model identifier
            **kwargs: Extra request body fields

        Returns:
            LLMResponse with the first choice's content ("" if absent)
        """
        body = self._build_body(messages, model, stream=False, **kwargs)

        try:
            response = await self._client.post("/chat/completions", json=body)
        except httpx.TransportError as e:
            raise NetworkError(f"Completion request failed: {e}") from e

        if not response.is_success:
            raise RequestError(response.status_code, response.text)

        try:
            data = response.json()
        except ValueError as e:
            raise ParseError(response.text, "invalid JSON") from e

        content = ""
        choices = data.get("choices") if isinstance(data, dict) else None
        if isinstance(choices, list) and choices and isinstance(choices[0], dict):
            message = choices[0].get("message")
            if isinstance(message, dict):
                content = message.get("content") or ""

        usage = data.get("usage") if isinstance(data, dict) else None
        return LLMResponse(
            content=content,
            model=(data.get("model") if isinstance(data, dict) else None) or model,
            usage=usage if isinstance(usage, dict) else None,
        )

    async def chat_completion_stream(
        self,
        messages: list[ChatMessage],
        model: str,
        **kwargs: Any
    ) -> StreamingResponse:
        """Generate a streaming completion.

        Args:
            messages: Conversation history
            model: Model identifier
            **kwargs: Extra request body fields

        Returns:
            StreamingResponse yielding content deltas as they arrive
        """
        body = self._build_body(messages, model, stream=True, **kwargs)

        def _on_finish(reason: str) -> None:
            stream.set_finish_reason(reason)

        stream = StreamingResponse(self._stream_generator(body, _on_finish))
        return stream

    async def _stream_generator(
        self,
        body: dict[str, Any],
        on_finish: Callable[[str], None],
    ) -> AsyncIterator[str]:
        """Internal generator that owns the streaming response."""
        request = self._client.build_request("POST", "/chat/completions", json=body)
        try:
            response = await self._client.send(request, stream=True)
        except httpx.TransportError as e:
            raise NetworkError(f"Completion request failed: {e}") from e

        try:
            if not response.is_success:
                await response.aread()
                raise RequestError(response.status_code, response.text)

            async with aclosing(iter_content_deltas(response, on_finish)) as deltas:
                async for chunk in deltas:
                    yield chunk
        except httpx.TransportError as e:
            raise NetworkError(f"Stream interrupted: {e}") from e
        finally:
            await response.aclose()

    def _build_body(
        self,
        messages: list[ChatMessage],
        model: str,
        stream: bool,
        **kwargs: Any
    ) -> dict[str, Any]:
        return {
            "model": model,
            "messages": [msg.to_provider_format() for msg in messages],
            "stream": stream,
            **kwargs,
        }

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()
