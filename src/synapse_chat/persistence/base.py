"""Abstract base class for durable key/value storage.

This module defines the interface the session store persists through.
The abstraction hides:
- Storage medium (process memory, files on disk)
- Write atomicity strategy
- Encoding of stored values
"""

from abc import ABC, abstractmethod


class KeyValueStorage(ABC):
    """Abstract string key/value storage.

    Values are opaque strings; callers own serialization. Implementations
    raise PersistenceError when the medium cannot be read or written.
    """

    @abstractmethod
    def get_item(self, key: str) -> str | None:
        """Return the value stored under ``key``, or None if unset."""

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""

    @abstractmethod
    def remove_item(self, key: str) -> None:
        """Delete ``key``; missing keys are ignored."""

    @abstractmethod
    def keys(self) -> list[str]:
        """List stored keys."""

    @property
    @abstractmethod
    def backend_type(self) -> str:
        """Get the backend type identifier."""
