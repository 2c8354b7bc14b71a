"""Generation module: orchestrates completions against the session store."""

from .orchestrator import ChatOrchestrator, to_chat_messages
from .state import GenerationResult, GenerationState, SessionGuard
from .title import TitleSummarizer

__all__ = [
    "ChatOrchestrator",
    "GenerationResult",
    "GenerationState",
    "SessionGuard",
    "TitleSummarizer",
    "to_chat_messages",
]
