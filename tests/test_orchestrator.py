"""Unit tests for the generation orchestrator."""
import asyncio

import pytest
from conftest import ScriptedProvider
from hypothesis import given, settings
from hypothesis import strategies as st

from synapse_chat.errors import NetworkError, RequestError
from synapse_chat.generation import (
    ChatOrchestrator,
    GenerationState,
    SessionGuard,
    to_chat_messages,
)
from synapse_chat.llm import CompletionClient
from synapse_chat.persistence import InMemoryStorage
from synapse_chat.sessions import DEFAULT_TITLE, Message, MessageRole, SessionStore
from synapse_chat.sessions.transforms import replace_history


def make_orchestrator(store: SessionStore, provider: ScriptedProvider) -> ChatOrchestrator:
    return ChatOrchestrator(store, CompletionClient(provider))


def seed(store: SessionStore, *pairs: tuple[str, str]) -> list[Message]:
    """Give the current session a [user, assistant, ...] history."""
    history = []
    for question, answer in pairs:
        history.append(Message(role=MessageRole.USER, content=question))
        history.append(Message(role=MessageRole.ASSISTANT, content=answer, model="openai"))
    store.update(store.current_id, lambda s: replace_history(s, history))
    return history


async def wait_until(predicate, attempts: int = 100) -> None:
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition never became true")


class TestToChatMessages:
    """Tests for building the request message list."""

    def test_system_instruction_prepended(self):
        history = [Message(role=MessageRole.USER, content="Hi", images=["data:x"])]

        request = to_chat_messages(history, "Be brief")

        assert [(m.role, m.content) for m in request] == [("system", "Be brief"), ("user", "Hi")]
        assert request[1].images == ["data:x"]

    def test_blank_instruction_omitted(self):
        history = [Message(role=MessageRole.USER, content="Hi")]
        assert [m.role for m in to_chat_messages(history, "   ")] == ["user"]


class TestSessionGuard:
    """Tests for the per-session single-flight token."""

    def test_second_acquire_fails(self):
        guard = SessionGuard()

        assert guard.try_acquire("a")
        assert not guard.try_acquire("a")
        assert guard.try_acquire("b")

    def test_hold_releases_on_error(self):
        guard = SessionGuard()
        with pytest.raises(RuntimeError):
            with guard.hold("a") as acquired:
                assert acquired
                raise RuntimeError("boom")
        assert not guard.is_held("a")


class TestSend:
    """Tests for sending a user message."""

    async def test_successful_stream(self, store, provider):
        """Test the committed history after a streamed reply."""
        orchestrator = make_orchestrator(store, provider)

        result = await orchestrator.send("  Hi  ")

        assert result.ok
        assert result.content == "Hello"
        messages = store.current.messages
        assert [(m.role, m.content, m.is_streaming) for m in messages] == [
            (MessageRole.USER, "Hi", False),
            (MessageRole.ASSISTANT, "Hello", False),
        ]
        assert messages[1].model == "openai"
        assert orchestrator.state(store.current_id) is GenerationState.IDLE

    async def test_empty_input_is_noop(self, store, provider):
        """Test that blank text without images makes no request."""
        orchestrator = make_orchestrator(store, provider)

        assert await orchestrator.send("   ") is None
        assert provider.requests == []
        assert store.current.messages == []

    async def test_images_without_text(self, store, provider):
        """Test that an image-only message is sent as multi-part content."""
        orchestrator = make_orchestrator(store, provider)

        result = await orchestrator.send("", images=["data:image/png;base64,AA"])

        assert result.ok
        assert store.current.messages[0].images == ["data:image/png;base64,AA"]
        wire = provider.requests[0][0].to_provider_format()
        assert wire["content"][1] == {
            "type": "image_url",
            "image_url": {"url": "data:image/png;base64,AA"},
        }

    async def test_concurrent_send_is_rejected(self, store):
        """Test that a second send while generating is ignored entirely."""
        gate = asyncio.Event()
        provider = ScriptedProvider(chunks=["Hel", "lo"], gate=gate)
        orchestrator = make_orchestrator(store, provider)
        session_id = store.current_id

        first = asyncio.create_task(orchestrator.send("first"))
        await wait_until(lambda: orchestrator.is_generating(session_id))

        assert await orchestrator.send("second") is None

        gate.set()
        result = await first

        assert result.ok
        assert len(provider.requests) == 1
        user_texts = [m.content for m in store.get(session_id).messages if m.role is MessageRole.USER]
        assert user_texts == ["first"]
        assert not orchestrator.is_generating(session_id)

    async def test_failure_before_any_chunk_removes_placeholder(self, store):
        """Test that a rejected request leaves only the user message."""
        provider = ScriptedProvider(chunks=[], error=RequestError(500, "boom"))
        orchestrator = make_orchestrator(store, provider)

        result = await orchestrator.send("Hi")

        assert result.state is GenerationState.FAILED
        assert result.error == "Chat failed: 500 - boom"
        messages = store.current.messages
        assert [(m.role, m.content) for m in messages] == [(MessageRole.USER, "Hi")]
        assert not orchestrator.is_generating(store.current_id)

    async def test_failure_after_chunks_keeps_partial_content(self, store):
        """Test that a broken stream keeps what already arrived."""
        provider = ScriptedProvider(chunks=["Hel", "lo"], error=NetworkError("reset"))
        orchestrator = make_orchestrator(store, provider)

        result = await orchestrator.send("Hi")

        assert result.state is GenerationState.FAILED
        assert result.content == "Hello"
        reply = store.current.messages[-1]
        assert reply.role is MessageRole.ASSISTANT
        assert reply.content == "Hello"
        assert reply.is_streaming is False

    async def test_buffered_mode(self, store, provider):
        """Test that a session with streaming off gets the whole reply at once."""
        store.toggle_streaming(store.current_id)
        seen = []
        store.subscribe(lambda s: seen.append(s.current.messages[-1].content if s.current.messages else None))
        orchestrator = make_orchestrator(store, provider)

        result = await orchestrator.send("Hi")

        assert result.content == "Hello"
        assert "Hel" not in seen

    async def test_system_instruction_not_persisted(self, store, provider):
        """Test that the instruction goes to the request but not the history."""
        store.set_system_instruction(store.current_id, "Be brief")
        orchestrator = make_orchestrator(store, provider)

        await orchestrator.send("Hi")

        request = provider.requests[0]
        assert (request[0].role, request[0].content) == ("system", "Be brief")
        assert all(m.role is not MessageRole.SYSTEM for m in store.current.messages)

    async def test_uses_session_model(self, store, provider):
        store.set_model(store.current_id, "mistral")
        orchestrator = make_orchestrator(store, provider)

        await orchestrator.send("Hi")

        assert store.current.messages[-1].model == "mistral"

    async def test_session_switch_mid_stream(self, store):
        """Test that chunks land in the originating session after a switch."""
        gate = asyncio.Event()
        provider = ScriptedProvider(chunks=["Hel", "lo"], gate=gate)
        orchestrator = make_orchestrator(store, provider)
        origin = store.current_id

        task = asyncio.create_task(orchestrator.send("Hi"))
        await wait_until(lambda: orchestrator.is_generating(origin))
        other = store.create_session()

        gate.set()
        await task

        assert store.current_id == other.id
        assert store.get(other.id).messages == []
        assert store.get(origin).messages[-1].content == "Hello"

    async def test_cancellation_rolls_back_and_releases(self, store):
        gate = asyncio.Event()
        provider = ScriptedProvider(chunks=["Hel"], gate=gate)
        orchestrator = make_orchestrator(store, provider)
        session_id = store.current_id

        task = asyncio.create_task(orchestrator.send("Hi"))
        await wait_until(lambda: orchestrator.is_generating(session_id))
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert [m.role for m in store.get(session_id).messages] == [MessageRole.USER]
        assert not orchestrator.is_generating(session_id)

    async def test_guard_released_after_error(self, store):
        provider = ScriptedProvider(chunks=[], error=NetworkError("offline"))
        orchestrator = make_orchestrator(store, provider)

        await orchestrator.send("Hi")
        provider.error = None
        provider.chunks = ["ok"]

        result = await orchestrator.send("Again")

        assert result.ok


class TestTitles:
    """Tests for background title generation."""

    async def test_first_message_titles_session(self, store):
        provider = ScriptedProvider(chunks=["Hello"], title='"Greeting Chat"')
        orchestrator = make_orchestrator(store, provider)

        await orchestrator.send("Hello there")
        await orchestrator.join_background_tasks()

        assert store.current.title == "Greeting Chat"
        assert provider.title_requests[0][1].content == "Hello there"

    async def test_failed_title_leaves_session_unchanged(self, store):
        provider = ScriptedProvider(chunks=["Hello"], title=NetworkError("offline"))
        orchestrator = make_orchestrator(store, provider)

        await orchestrator.send("Hello there")
        await orchestrator.join_background_tasks()

        assert store.current.title == DEFAULT_TITLE

    async def test_only_first_message_is_titled(self, store):
        provider = ScriptedProvider(chunks=["Hello"], title="Title")
        orchestrator = make_orchestrator(store, provider)

        await orchestrator.send("one")
        await orchestrator.send("two")
        await orchestrator.join_background_tasks()

        assert len(provider.title_requests) == 1

    async def test_image_only_first_message_is_not_titled(self, store):
        provider = ScriptedProvider(chunks=["A cat"], title="Title")
        orchestrator = make_orchestrator(store, provider)

        await orchestrator.send("", images=["data:image/png;base64,AA"])
        await orchestrator.join_background_tasks()

        assert provider.title_requests == []


class TestEditAndRegenerate:
    """Tests for editing a user message and regenerating a reply."""

    async def test_edit_truncates_and_regenerates(self, store):
        """Test that editing message i keeps 0..i and generates once."""
        history = seed(store, ("first", "one"), ("second", "two"))
        provider = ScriptedProvider(chunks=["new"])
        orchestrator = make_orchestrator(store, provider)

        result = await orchestrator.edit_message(history[0].id, "X")

        assert result.ok
        messages = store.current.messages
        assert [(m.role, m.content) for m in messages] == [
            (MessageRole.USER, "X"),
            (MessageRole.ASSISTANT, "new"),
        ]
        assert messages[0].id == history[0].id
        assert len(provider.requests) == 1
        assert provider.requests[0][-1].content == "X"

    async def test_edit_unknown_message_is_noop(self, store, provider):
        seed(store, ("first", "one"))
        orchestrator = make_orchestrator(store, provider)

        assert await orchestrator.edit_message("missing", "X") is None
        assert provider.requests == []

    async def test_edit_assistant_message_is_rejected(self, store, provider):
        history = seed(store, ("first", "one"))
        orchestrator = make_orchestrator(store, provider)

        assert await orchestrator.edit_message(history[1].id, "X") is None
        assert store.current.messages == history

    async def test_empty_edit_is_rejected(self, store, provider):
        history = seed(store, ("first", "one"))
        orchestrator = make_orchestrator(store, provider)

        assert await orchestrator.edit_message(history[0].id, "  ") is None
        assert store.current.messages == history

    async def test_regenerate_replaces_last_reply(self, store):
        history = seed(store, ("Hi", "old"))
        provider = ScriptedProvider(chunks=["fresh"])
        orchestrator = make_orchestrator(store, provider)

        result = await orchestrator.regenerate()

        assert result.ok
        messages = store.current.messages
        assert [m.content for m in messages] == ["Hi", "fresh"]
        assert messages[1].id != history[1].id
        assert [m.content for m in provider.requests[0]] == ["Hi"]

    async def test_regenerate_requires_assistant_last(self, store, provider):
        orchestrator = make_orchestrator(store, provider)

        assert await orchestrator.regenerate() is None

        store.update(store.current_id, lambda s: replace_history(
            s, [Message(role=MessageRole.USER, content="Hi")]
        ))
        assert await orchestrator.regenerate() is None
        assert provider.requests == []


class TestStreamingInvariant:
    """Property tests over the generation state machine."""

    @settings(max_examples=40, deadline=None)
    @given(
        chunks=st.lists(st.text(max_size=5), max_size=8),
        fail=st.booleans(),
        streaming=st.booleans(),
    )
    def test_single_streaming_message(self, chunks: list[str], fail: bool, streaming: bool):
        """Property test: at most one message streams, and none once settled."""
        store = SessionStore.open(InMemoryStorage())
        if not streaming:
            store.toggle_streaming(store.current_id)
        provider = ScriptedProvider(chunks=chunks, error=NetworkError("cut") if fail else None)
        orchestrator = make_orchestrator(store, provider)
        violations = []

        def check(s: SessionStore) -> None:
            for session in s.sessions:
                if sum(m.is_streaming for m in session.messages) > 1:
                    violations.append(session.id)

        store.subscribe(check)
        result = asyncio.run(orchestrator.send("Hi"))

        assert violations == []
        messages = store.current.messages
        assert not any(m.is_streaming for m in messages)
        content = "".join(chunks)
        if fail and (not content or not streaming):
            assert len(messages) == 1
        else:
            assert messages[-1].content == content
        assert result.ok is (not fail)
