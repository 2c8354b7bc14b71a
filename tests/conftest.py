"""Pytest configuration and shared fixtures."""
import json
from typing import Any

import httpx
import pytest

from synapse_chat.llm import CompletionClient, LLMProvider, LLMResponse, StreamingResponse
from synapse_chat.llm.client import TITLE_INSTRUCTION
from synapse_chat.persistence import InMemoryStorage
from synapse_chat.sessions import SessionStore


def delta_record(content: str | None = None, finish_reason: str | None = None) -> dict[str, Any]:
    """Build one streamed completion record."""
    delta = {} if content is None else {"content": content}
    return {"choices": [{"index": 0, "delta": delta, "finish_reason": finish_reason}]}


def sse_body(*contents: str, done: bool = True) -> bytes:
    """Encode content deltas as a ``data:`` framed stream body."""
    lines = [f"data: {json.dumps(delta_record(c))}\n\n" for c in contents]
    if done:
        lines.append("data: [DONE]\n\n")
    return "".join(lines).encode("utf-8")


class ChunkedStream(httpx.AsyncByteStream):
    """Response body delivered in fixed network reads, optionally failing after them."""

    def __init__(self, chunks: list[bytes], error: Exception | None = None) -> None:
        self._chunks = chunks
        self._error = error
        self.closed = False

    async def __aiter__(self):
        for chunk in self._chunks:
            yield chunk
        if self._error is not None:
            raise self._error

    async def aclose(self) -> None:
        self.closed = True


def streaming_response(chunks: list[bytes], error: Exception | None = None) -> tuple[httpx.Response, ChunkedStream]:
    stream = ChunkedStream(chunks, error)
    return httpx.Response(200, stream=stream), stream


class ScriptedProvider(LLMProvider):
    """Provider that replays scripted chunks instead of calling an endpoint.

    Args:
        chunks: Deltas yielded by every streamed completion
        error: Raised after the chunks (or instead of a buffered reply)
        title: Title reply, or an exception to raise for title requests
        models: Model list, or an exception to raise
        gate: Optional event awaited before each chunk
    """

    def __init__(
        self,
        chunks: list[str] | None = None,
        error: Exception | None = None,
        title: str | Exception = "",
        models: list[str] | Exception | None = None,
        gate=None,
    ) -> None:
        self.chunks = list(chunks or [])
        self.error = error
        self.title = title
        self.models = models if models is not None else ["openai"]
        self.gate = gate
        self.requests: list[list] = []
        self.title_requests: list[list] = []
        self.closed = False

    async def list_models(self) -> list[str]:
        if isinstance(self.models, Exception):
            raise self.models
        return list(self.models)

    async def chat_completion(self, messages, model, **kwargs) -> LLMResponse:
        if messages and messages[0].content == TITLE_INSTRUCTION:
            self.title_requests.append(list(messages))
            if isinstance(self.title, Exception):
                raise self.title
            return LLMResponse(content=self.title, model=model)

        self.requests.append(list(messages))
        if self.error is not None:
            raise self.error
        return LLMResponse(content="".join(self.chunks), model=model)

    async def chat_completion_stream(self, messages, model, **kwargs) -> StreamingResponse:
        self.requests.append(list(messages))
        return StreamingResponse(self._replay())

    async def _replay(self):
        for chunk in self.chunks:
            if self.gate is not None:
                await self.gate.wait()
            yield chunk
        if self.error is not None:
            raise self.error

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def storage():
    """Return an empty in-memory storage backend."""
    return InMemoryStorage()


@pytest.fixture
def store(storage):
    """Return a session store over in-memory storage."""
    return SessionStore.open(storage)


@pytest.fixture
def provider():
    """Return a provider replying "Hello" in two chunks."""
    return ScriptedProvider(chunks=["Hel", "lo"])


@pytest.fixture
def client(provider):
    """Return a completion client over the scripted provider."""
    return CompletionClient(provider)
