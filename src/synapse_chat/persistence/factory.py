"""Factory for creating key/value storage backends."""

from typing import Any

from .base import KeyValueStorage


def create_storage(
    backend: str = "file",
    **kwargs: Any
) -> KeyValueStorage:
    """Create a storage backend.

    Args:
        backend: Backend type ("memory" or "file")
        **kwargs: Backend-specific configuration
            For file:
                - directory: str | Path (default: ~/.synapse)

    Returns:
        KeyValueStorage instance

    Raises:
        ValueError: If backend type is not supported
    """
    if backend == "memory":
        from .in_memory import InMemoryStorage
        return InMemoryStorage(**kwargs)

    elif backend == "file":
        from .file import FileStorage
        return FileStorage(**kwargs)

    raise ValueError(
        f"Unsupported storage backend: {backend}. "
        f"Supported backends: memory, file"
    )
