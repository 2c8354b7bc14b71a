"""Unit tests for the pure session transforms."""
from synapse_chat.sessions import ChatSession, Message, MessageRole
from synapse_chat.sessions.transforms import (
    append_chunk,
    append_placeholder,
    clear_stale_streaming,
    drop_last_message,
    finalize_message,
    make_placeholder,
    rollback_message,
    truncate_and_edit,
)


def conversation() -> ChatSession:
    return ChatSession(
        messages=[
            Message(role=MessageRole.USER, content="first"),
            Message(role=MessageRole.ASSISTANT, content="one"),
            Message(role=MessageRole.USER, content="second"),
            Message(role=MessageRole.ASSISTANT, content="two"),
        ]
    )


class TestPlaceholderLifecycle:
    """Tests for the two-phase placeholder commit."""

    def test_placeholder_is_empty_and_streaming(self):
        placeholder = make_placeholder("mistral")

        assert placeholder.role is MessageRole.ASSISTANT
        assert placeholder.content == ""
        assert placeholder.is_streaming
        assert placeholder.model == "mistral"

    def test_chunks_fold_in_order(self):
        placeholder = make_placeholder("openai")
        session = append_placeholder(ChatSession(), [], placeholder)

        for chunk in ["Hel", "lo", ", world"]:
            session = append_chunk(session, placeholder.id, chunk)

        assert session.messages[-1].content == "Hello, world"
        assert session.messages[-1].is_streaming

    def test_chunk_for_missing_message_is_noop(self):
        session = conversation()
        assert append_chunk(session, "missing", "x") == session

    def test_finalize_clears_flag_only(self):
        placeholder = make_placeholder("openai")
        session = append_placeholder(ChatSession(), [], placeholder)
        session = append_chunk(session, placeholder.id, "done")

        final = finalize_message(session, placeholder.id).messages[-1]

        assert (final.content, final.is_streaming) == ("done", False)

    def test_rollback_removes_empty_placeholder(self):
        history = [Message(role=MessageRole.USER, content="Hi")]
        placeholder = make_placeholder("openai")
        session = append_placeholder(ChatSession(), history, placeholder)

        assert rollback_message(session, placeholder.id).messages == history

    def test_rollback_keeps_partial_content(self):
        placeholder = make_placeholder("openai")
        session = append_placeholder(ChatSession(), [], placeholder)
        session = append_chunk(session, placeholder.id, "Hel")

        kept = rollback_message(session, placeholder.id).messages[-1]

        assert (kept.content, kept.is_streaming) == ("Hel", False)

    def test_transforms_do_not_mutate_input(self):
        session = conversation()
        before = session.model_dump()

        truncate_and_edit(session, 0, "X")
        drop_last_message(session)

        assert session.model_dump() == before


class TestHistoryEdits:
    """Tests for truncation, removal and reconciliation."""

    def test_truncate_and_edit(self):
        session = truncate_and_edit(conversation(), 2, "changed")
        assert [m.content for m in session.messages] == ["first", "one", "changed"]

    def test_drop_last_message(self):
        session = drop_last_message(conversation())
        assert [m.content for m in session.messages] == ["first", "one", "second"]

    def test_clear_stale_streaming(self):
        session = ChatSession(
            messages=[Message(role=MessageRole.ASSISTANT, content="half", is_streaming=True)]
        )

        cleared = clear_stale_streaming(session)

        assert not cleared.messages[0].is_streaming
        assert cleared.messages[0].content == "half"

    def test_clear_stale_streaming_without_flags_is_identity(self):
        session = conversation()
        assert clear_stale_streaming(session) is session
