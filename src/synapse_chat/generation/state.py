"""Generation lifecycle types.

A generation moves through:
    IDLE -> PENDING -> STREAMING -> FINALIZED
    PENDING/STREAMING -> FAILED
and the session returns to IDLE once the attempt is over, whatever the outcome.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum


class GenerationState(str, Enum):
    """State of a session's in-flight generation."""

    IDLE = "idle"
    PENDING = "pending"
    STREAMING = "streaming"
    FINALIZED = "finalized"
    FAILED = "failed"


@dataclass(frozen=True)
class GenerationResult:
    """Outcome of one generation attempt."""

    session_id: str
    message_id: str
    state: GenerationState
    content: str = ""
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.state is GenerationState.FINALIZED


class SessionGuard:
    """Per-session single-flight token.

    At most one generation holds a session's token. A second acquire
    attempt fails instead of waiting, which is how duplicate triggers
    are ignored.
    """

    def __init__(self) -> None:
        self._held: set[str] = set()

    def is_held(self, session_id: str) -> bool:
        return session_id in self._held

    def try_acquire(self, session_id: str) -> bool:
        if session_id in self._held:
            return False
        self._held.add(session_id)
        return True

    def release(self, session_id: str) -> None:
        self._held.discard(session_id)

    @contextmanager
    def hold(self, session_id: str) -> Iterator[bool]:
        """Acquire for the duration of the block.

        Yields:
            True if acquired; the token is released on every exit path
        """
        acquired = self.try_acquire(session_id)
        try:
            yield acquired
        finally:
            if acquired:
                self.release(session_id)
