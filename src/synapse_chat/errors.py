"""Error types for the chat client.

Recovery policy per type:
- NetworkError / RequestError: raised by the completion layer and handled by
  the generation orchestrator (rollback or keep partial content).
- ParseError: a malformed streamed record; skipped by the transport reader.
- PersistenceError: storage failure; the session store logs it and carries on.
"""


class SynapseError(Exception):
    """Base exception for all chat client errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NetworkError(SynapseError):
    """Transport-level failure before or during a response."""


class RequestError(SynapseError):
    """Completion endpoint answered with a non-2xx status."""

    def __init__(self, status_code: int, body: str):
        super().__init__(
            f"Chat failed: {status_code} - {body}",
            {"status_code": status_code, "body": body},
        )
        self.status_code = status_code
        self.body = body


class ParseError(SynapseError):
    """A streamed record could not be decoded."""

    def __init__(self, record: str, reason: str):
        super().__init__(f"Malformed stream record ({reason}): {record[:200]}", {"record": record})
        self.record = record


class PersistenceError(SynapseError):
    """Durable storage could not be read or written."""
