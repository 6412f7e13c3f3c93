"""
Local key-value persistence with a finite capacity.

Behaves like a browser's localStorage: string keys, string values, and a total
byte budget shared by every key. A write that would push the total past the
capacity raises `StorageQuotaExceededError` and leaves the store unchanged.

`FileKeyValueStore` keeps one text file per key under a directory and is what
the app uses. `InMemoryKeyValueStore` has the same contract with no disk I/O.

`store` starts as None. Call `initialize()` once at startup; consuming modules
reference `storage.store` at call time rather than importing the variable.
"""

import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Optional, Protocol

from diso.config import settings
from diso.core.exceptions import StorageError, StorageQuotaExceededError

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    capacity_bytes: int

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


def _size_of(key: str, value: str) -> int:
    return len(key.encode("utf-8")) + len(value.encode("utf-8"))


class InMemoryKeyValueStore:
    def __init__(self, capacity_bytes: int = settings.storage_capacity_bytes):
        self.capacity_bytes = capacity_bytes
        self._data: dict[str, str] = {}
        self._lock = threading.Lock()

    def used_bytes(self) -> int:
        return sum(_size_of(k, v) for k, v in self._data.items())

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            current = self._data.get(key)
            others = self.used_bytes() - (_size_of(key, current) if current is not None else 0)
            needed = others + _size_of(key, value)
            if needed > self.capacity_bytes:
                raise StorageQuotaExceededError(
                    f"Setting '{key}' exceeded the quota ({needed} > {self.capacity_bytes} bytes)"
                )
            self._data[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)


class FileKeyValueStore:
    """One `<key>.txt` file per key; writes are atomic (temp file + rename)."""

    def __init__(self, directory, capacity_bytes: int = settings.storage_capacity_bytes):
        self.directory = Path(directory).expanduser()
        self.capacity_bytes = capacity_bytes
        self._lock = threading.Lock()

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.txt"

    def _used_bytes_excluding(self, key: str) -> int:
        """Raises OSError or UnicodeDecodeError from unreadable sibling files."""
        if not self.directory.exists():
            return 0
        return sum(
            _size_of(entry.stem, entry.read_text(encoding="utf-8"))
            for entry in self.directory.glob("*.txt")
            if entry.stem != key
        )

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        with self._lock:
            try:
                return path.read_text(encoding="utf-8")
            except FileNotFoundError:
                return None
            except (OSError, UnicodeDecodeError) as e:
                raise StorageError(f"Failed to read '{key}': {e}") from e

    def set(self, key: str, value: str) -> None:
        with self._lock:
            try:
                used = self._used_bytes_excluding(key)
            except (OSError, UnicodeDecodeError) as e:
                raise StorageError(f"Failed to measure storage usage: {e}") from e
            needed = used + _size_of(key, value)
            if needed > self.capacity_bytes:
                raise StorageQuotaExceededError(
                    f"Setting '{key}' exceeded the quota ({needed} > {self.capacity_bytes} bytes)"
                )
            tmp_path = None
            try:
                self.directory.mkdir(parents=True, exist_ok=True)
                fd, tmp_path = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(value)
                os.replace(tmp_path, self._path(key))
            except OSError as e:
                if tmp_path and os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise StorageError(f"Failed to write '{key}': {e}") from e

    def delete(self, key: str) -> None:
        with self._lock:
            try:
                self._path(key).unlink(missing_ok=True)
            except OSError as e:
                raise StorageError(f"Failed to delete '{key}': {e}") from e


# Set by initialize(). None until startup has run.
store = None  # KeyValueStore | None


def initialize(directory: Optional[str] = None) -> None:
    """Create the file-backed store and bind it to the module-level `store`."""
    global store

    directory = directory or settings.storage_dir
    store = FileKeyValueStore(directory, capacity_bytes=settings.storage_capacity_bytes)
    logger.info(f"[STARTUP] Local storage at {store.directory} ({settings.storage_capacity_kb} KB quota)")
