"""
In-memory and no-op storage.

Substituted when the local filesystem cannot be used, so search keeps
working for the current session without persistence.
"""

import copy
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any

from loguru import logger

from .base import KeyValueStore, StorageBackend, StorageKeyError, StoredPayload


class MemoryStorage(StorageBackend):
    """Payload store held in a dict. Lost when the process exits."""

    persistent = False

    def __init__(self) -> None:
        self._payloads: dict[str, bytes] = {}

    async def save(
        self,
        key: str,
        data: bytes,
        content_type: str = "application/json",
        compress: bool = True,
    ) -> StoredPayload:
        self._payloads[key] = bytes(data)
        return StoredPayload(key=key, size=len(data), stored_size=len(data), saved_at=datetime.now())

    async def load(self, key: str) -> bytes:
        try:
            return self._payloads[key]
        except KeyError:
            raise StorageKeyError(f"Key not found: {key}") from None

    async def exists(self, key: str) -> bool:
        return key in self._payloads

    async def delete(self, key: str) -> bool:
        return self._payloads.pop(key, None) is not None


class NullStorage(StorageBackend):
    """Payload store that keeps nothing. Every load misses."""

    persistent = False

    async def save(
        self,
        key: str,
        data: bytes,
        content_type: str = "application/json",
        compress: bool = True,
    ) -> StoredPayload:
        return StoredPayload(key=key, size=len(data), stored_size=0, saved_at=datetime.now())

    async def load(self, key: str) -> bytes:
        raise StorageKeyError(f"Key not found: {key}")

    async def exists(self, key: str) -> bool:
        return False

    async def delete(self, key: str) -> bool:
        return False


class MemoryKeyValueStore(KeyValueStore):
    """Key/value records held in a dict. Values are deep-copied in and out."""

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}

    def get(self, key: str) -> Any | None:
        value = self._data.get(key)
        return copy.deepcopy(value) if value is not None else None

    def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None


def is_writable_directory(path: str | os.PathLike[str]) -> bool:
    """Return True if ``path`` exists (or can be created) and accepts new files."""
    directory = Path(path).expanduser()
    try:
        directory.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(dir=directory, prefix=".probe-"):
            pass
    except OSError:
        return False
    return True


def detect_storage(cache_dir: str | os.PathLike[str] | None) -> tuple[KeyValueStore, StorageBackend]:
    """Pick the metadata and payload stores for ``cache_dir``.

    Falls back to in-memory stores when no directory is configured or it is
    not writable.
    """
    from .local import JsonFileKeyValueStore, LocalStorage

    if cache_dir is not None and is_writable_directory(cache_dir):
        base = Path(cache_dir).expanduser()
        return JsonFileKeyValueStore(base / "metadata.json"), LocalStorage(base_path=str(base / "payloads"))

    if cache_dir is not None:
        logger.warning(f"Cache directory {cache_dir} is not writable; caching for this session only")
    return MemoryKeyValueStore(), MemoryStorage()
