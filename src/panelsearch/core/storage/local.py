"""
Local filesystem storage.

``LocalStorage`` is the async payload store (optional gzip compression, atomic
replacement). ``JsonFileKeyValueStore`` is the sync metadata store: one small
JSON document rewritten atomically on every change.
"""

import errno
import json
import os
import zlib
from datetime import datetime
from pathlib import Path
from typing import Any

import aiofiles
import aiofiles.os
from loguru import logger

from ..utils.file_io import atomic_write
from .base import (
    KeyValueStore,
    StorageBackend,
    StorageError,
    StorageKeyError,
    StoragePermissionError,
    StorageQuotaError,
    StoredPayload,
)
from .compression import CompressionType, compression_for, decode_payload, encode_payload

_QUOTA_ERRNOS = {errno.ENOSPC, getattr(errno, "EDQUOT", errno.ENOSPC)}


def _translate_os_error(action: str, path: Path, e: OSError) -> StorageError:
    if isinstance(e, PermissionError):
        return StoragePermissionError(f"Cannot {action} {path}: {e}")
    if e.errno in _QUOTA_ERRNOS:
        return StorageQuotaError(f"Cannot {action} {path}: {e}")
    return StorageError(f"Cannot {action} {path}: {e}")


class LocalStorage(StorageBackend):
    """Payloads stored as files under ``base_path``, one file per key.

    A compressed payload is written as ``<key>.gz``. At most one variant of a
    key exists at a time; saving removes the other.
    """

    def __init__(self, base_path: str = "~/.panelsearch-data/cache/payloads"):
        self.base_path = Path(base_path).expanduser().resolve()
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _get_full_path(self, key: str) -> Path:
        """Resolve a storage key to an absolute path under ``base_path``.

        Rejects unsafe keys (absolute paths, traversal, empty keys, and
        backslash-delimited paths) to prevent writes outside ``base_path``.
        """
        raw_key = key.strip()
        if not raw_key:
            raise StoragePermissionError("Storage key cannot be empty.")
        if "\x00" in raw_key:
            raise StoragePermissionError("Storage key cannot contain null bytes.")
        if "\\" in raw_key:
            raise StoragePermissionError("Storage key cannot contain backslashes. Use '/' separators.")

        key_path = Path(raw_key)
        if key_path.is_absolute() or raw_key.startswith("~"):
            raise StoragePermissionError(f"Unsafe storage key '{key}': absolute paths are not allowed.")

        full_path = (self.base_path / key_path).resolve()
        try:
            full_path.relative_to(self.base_path)
        except ValueError as e:
            raise StoragePermissionError(f"Unsafe storage key '{key}': path traversal is not allowed.") from e
        return full_path

    def _variants(self, key: str) -> list[Path]:
        path = self._get_full_path(key)
        return [path.with_name(path.name + c.suffix) for c in CompressionType]

    async def save(
        self,
        key: str,
        data: bytes,
        content_type: str = "application/json",
        compress: bool = True,
    ) -> StoredPayload:
        compression = compression_for(content_type) if compress else CompressionType.NONE
        encoded = encode_payload(data, compression)
        base = self._get_full_path(key)
        path = base.with_name(base.name + compression.suffix)

        tmp_path = path.with_name(f".{path.name}.tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(tmp_path, "wb") as f:
                await f.write(encoded)
            await aiofiles.os.replace(tmp_path, path)
        except OSError as e:
            if tmp_path.exists():
                await aiofiles.os.remove(tmp_path)
            raise _translate_os_error("write to", path, e) from e

        for other in self._variants(key):
            if other != path and other.exists():
                await aiofiles.os.remove(other)

        return StoredPayload(
            key=key,
            size=len(data),
            stored_size=len(encoded),
            saved_at=datetime.now(),
            compression=None if compression is CompressionType.NONE else compression.value,
        )

    async def load(self, key: str) -> bytes:
        path = next((p for p in self._variants(key) if p.exists()), None)
        if path is None:
            raise StorageKeyError(f"Key not found: {key}")
        try:
            async with aiofiles.open(path, "rb") as f:
                data = await f.read()
        except OSError as e:
            raise _translate_os_error("read", path, e) from e
        try:
            return decode_payload(data)
        except (OSError, EOFError, zlib.error) as e:
            raise StorageError(f"Corrupt payload in {path}: {e}") from e

    async def exists(self, key: str) -> bool:
        return any(p.exists() for p in self._variants(key))

    async def delete(self, key: str) -> bool:
        deleted = False
        for path in self._variants(key):
            if path.exists():
                try:
                    await aiofiles.os.remove(path)
                except OSError as e:
                    raise _translate_os_error("delete", path, e) from e
                deleted = True
        return deleted


class JsonFileKeyValueStore(KeyValueStore):
    """Key/value records kept in a single JSON file.

    The whole file is re-read on every access so that several processes
    sharing one cache directory observe each other's writes.
    """

    def __init__(self, path: str | os.PathLike[str]):
        self.path = Path(path).expanduser()
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def _read_all(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning(f"Unreadable metadata store {self.path}: {e}. Treating as empty.")
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: dict[str, Any]) -> None:
        try:
            atomic_write(self.path, json.dumps(data, indent=2, sort_keys=True))
        except OSError as e:
            raise _translate_os_error("write to", self.path, e) from e

    def get(self, key: str) -> Any | None:
        return self._read_all().get(key)

    def set(self, key: str, value: Any) -> None:
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    def delete(self, key: str) -> bool:
        data = self._read_all()
        if key not in data:
            return False
        del data[key]
        self._write_all(data)
        return True
