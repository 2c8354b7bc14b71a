"""Durable storage module for the chat client.

Provides the "localStorage" the session store persists through.
"""

from .base import KeyValueStorage
from .factory import create_storage
from .file import FileStorage
from .in_memory import InMemoryStorage

__all__ = [
    "FileStorage",
    "InMemoryStorage",
    "KeyValueStorage",
    "create_storage",
]
