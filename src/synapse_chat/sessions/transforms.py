"""Pure transforms over ChatSession.

Generation is a two-phase commit against the session store:
phase 1 appends a streaming placeholder, phase 2 either finalizes it or
rolls it back. Each phase (and every chunk fold in between) is one of the
functions below, so they can be tested without a store or a network.
"""

from collections.abc import Callable

from .models import ChatSession, Message, MessageRole

SessionTransform = Callable[[ChatSession], ChatSession]


def _map_message(
    session: ChatSession,
    message_id: str,
    update: Callable[[Message], Message],
) -> ChatSession:
    messages = [update(m) if m.id == message_id else m for m in session.messages]
    return session.model_copy(update={"messages": messages})


def make_placeholder(model: str | None) -> Message:
    """Create an empty assistant message that is still streaming."""
    return Message(role=MessageRole.ASSISTANT, content="", is_streaming=True, model=model)


def replace_history(session: ChatSession, messages: list[Message]) -> ChatSession:
    """Commit ``messages`` as the session's history."""
    return session.model_copy(update={"messages": list(messages)})


def append_placeholder(
    session: ChatSession,
    history: list[Message],
    placeholder: Message,
) -> ChatSession:
    """Phase 1: commit ``history`` followed by the streaming placeholder."""
    return session.model_copy(update={"messages": [*history, placeholder]})


def append_chunk(session: ChatSession, message_id: str, chunk: str) -> ChatSession:
    """Fold one chunk into the placeholder's content.

    No-op if the placeholder is gone (e.g. history was replaced meanwhile).
    """
    return _map_message(
        session,
        message_id,
        lambda m: m.model_copy(update={"content": m.content + chunk}),
    )


def finalize_message(session: ChatSession, message_id: str) -> ChatSession:
    """Phase 2 (success): clear the streaming flag, keep content as is."""
    return _map_message(
        session,
        message_id,
        lambda m: m.model_copy(update={"is_streaming": False}),
    )


def rollback_message(session: ChatSession, message_id: str) -> ChatSession:
    """Phase 2 (failure): drop an empty placeholder, or keep partial content.

    An empty bubble never survives a failed generation.
    """
    found = session.find_message(message_id)
    if found is None:
        return session

    _, message = found
    if not message.content:
        messages = [m for m in session.messages if m.id != message_id]
        return session.model_copy(update={"messages": messages})
    return finalize_message(session, message_id)


def truncate_and_edit(session: ChatSession, index: int, content: str) -> ChatSession:
    """Keep history up to ``index`` inclusive and replace that message's content."""
    history = list(session.messages[: index + 1])
    history[index] = history[index].model_copy(update={"content": content})
    return session.model_copy(update={"messages": history})


def drop_last_message(session: ChatSession) -> ChatSession:
    return session.model_copy(update={"messages": list(session.messages[:-1])})


def clear_stale_streaming(session: ChatSession) -> ChatSession:
    """Reset streaming flags left behind by an interrupted run."""
    if not any(m.is_streaming for m in session.messages):
        return session
    messages = [
        m.model_copy(update={"is_streaming": False}) if m.is_streaming else m
        for m in session.messages
    ]
    return session.model_copy(update={"messages": messages})
