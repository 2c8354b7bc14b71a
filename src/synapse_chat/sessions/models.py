"""Data models for chat sessions.

These models define the conversation state rendered by the UI and
persisted by the session store. Instances are immutable: every change
produces a new ChatSession via ``model_copy``.
"""

from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_TITLE = "New Chat"


def new_id() -> str:
    return str(uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


class MessageRole(str, Enum):
    """Role of a message author."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class Message(BaseModel):
    """A single message in a session's history.

    Content is append-only while ``is_streaming`` is true and fixed
    afterwards, except for explicit edits of user messages.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id, description="Unique within a session")
    role: MessageRole
    content: str = ""
    images: list[str] | None = Field(default=None, description="Embedded image payloads")
    is_streaming: bool = False
    model: str | None = Field(default=None, description="Model that produced this message")


class ChatSession(BaseModel):
    """A conversation with its own history and settings."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    title: str = DEFAULT_TITLE
    messages: list[Message] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_now)
    system_instruction: str | None = None
    model: str | None = Field(default=None, description="Session-level default model")
    enable_streaming: bool | None = Field(default=True)

    @property
    def streaming_enabled(self) -> bool:
        """Streaming preference with the unset case treated as enabled."""
        return self.enable_streaming is not False

    def find_message(self, message_id: str) -> tuple[int, Message] | None:
        """Locate a message by id.

        Returns:
            Tuple of (index, message), or None if absent
        """
        for index, message in enumerate(self.messages):
            if message.id == message_id:
                return index, message
        return None


def new_session(model: str | None = None) -> ChatSession:
    """Create an empty session with streaming enabled."""
    return ChatSession(model=model, system_instruction="", enable_streaming=True)
