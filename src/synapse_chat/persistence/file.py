"""File-backed key/value storage.

Each key is stored as its own UTF-8 file inside a directory. Writes go to a
temporary sibling first and are moved into place with ``os.replace``, so a
crash mid-write leaves the previous value intact.
"""

import os
import re
import tempfile
from pathlib import Path

from ..errors import PersistenceError
from .base import KeyValueStorage

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")
_SUFFIX = ".json"


class FileStorage(KeyValueStorage):
    """Directory of one-file-per-key values.

    Args:
        directory: Storage directory, created on first write
    """

    def __init__(self, directory: str | Path = "~/.synapse"):
        self._directory = Path(directory).expanduser()

    @property
    def directory(self) -> Path:
        return self._directory

    def _path_for(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self._directory / f"{key}{_SUFFIX}"

    def get_item(self, key: str) -> str | None:
        path = self._path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise PersistenceError(f"Failed to read {path}: {e}") from e

    def set_item(self, key: str, value: str) -> None:
        path = self._path_for(key)
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self._directory, prefix=f".{key}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(value)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise PersistenceError(f"Failed to write {path}: {e}") from e

    def remove_item(self, key: str) -> None:
        path = self._path_for(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise PersistenceError(f"Failed to remove {path}: {e}") from e

    def keys(self) -> list[str]:
        if not self._directory.is_dir():
            return []
        return sorted(p.name[: -len(_SUFFIX)] for p in self._directory.glob(f"*{_SUFFIX}"))

    @property
    def backend_type(self) -> str:
        return "file"
