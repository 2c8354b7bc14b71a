"""Session state module.

Holds the conversation data model, the pure transforms that change it,
and the persisted store that owns it.
"""

from .models import DEFAULT_TITLE, ChatSession, Message, MessageRole, new_session
from .repository import (
    DEFAULT_MODEL_KEY,
    SESSIONS_KEY,
    THEME_KEY,
    PersistedState,
    StateRepository,
    dump_sessions,
    load_sessions,
)
from .store import SessionStore

__all__ = [
    "ChatSession",
    "DEFAULT_MODEL_KEY",
    "DEFAULT_TITLE",
    "Message",
    "MessageRole",
    "PersistedState",
    "SESSIONS_KEY",
    "SessionStore",
    "StateRepository",
    "THEME_KEY",
    "dump_sessions",
    "load_sessions",
    "new_session",
]
