"""
synapse_chat: a multi-session streaming chat client for OpenAI-compatible endpoints.

The package is split so that each module hides one design decision:
the transport framing (llm.sse), the provider wire calls (llm.providers),
the conversation state and its persistence (sessions, persistence), and
the generation state machine (generation).
"""

__version__ = "0.1.0"

from .config import Settings, load_settings
from .errors import (
    NetworkError,
    ParseError,
    PersistenceError,
    RequestError,
    SynapseError,
)
from .generation import ChatOrchestrator, GenerationResult, GenerationState
from .llm import CompletionClient, create_llm_provider
from .persistence import create_storage
from .sessions import ChatSession, Message, MessageRole, SessionStore

__all__ = [
    "ChatOrchestrator",
    "ChatSession",
    "CompletionClient",
    "GenerationResult",
    "GenerationState",
    "Message",
    "MessageRole",
    "NetworkError",
    "ParseError",
    "PersistenceError",
    "RequestError",
    "SessionStore",
    "Settings",
    "SynapseError",
    "create_llm_provider",
    "create_storage",
    "load_settings",
]
