"""
Store interfaces for cached artifacts.

Each cached artifact lives in two stores: its freshness record in a small
synchronous key/value store, and its payload bytes in an asynchronous
payload store. Keeping them apart lets metadata be read without touching
the (multi-megabyte) payload.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass
class StoredPayload:
    """What a payload store reports after a successful save.

    ``size`` is the caller's byte count; ``stored_size`` is what ended up
    on the medium after compression.
    """

    key: str
    size: int
    stored_size: int
    saved_at: datetime
    compression: str | None = None


class KeyValueStore(ABC):
    """Synchronous store for small JSON-serializable records."""

    @abstractmethod
    def get(self, key: str) -> Any | None:
        """Return the stored record, or None if the key is absent."""

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store a record, replacing any previous one."""

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Delete a record. Returns True if deleted, False if it didn't exist."""


class StorageBackend(ABC):
    """Asynchronous store for artifact payloads.

    ``persistent`` is False for stores whose contents vanish with the process.
    """

    persistent: bool = True

    @abstractmethod
    async def save(
        self,
        key: str,
        data: bytes,
        content_type: str = "application/json",
        compress: bool = True,
    ) -> StoredPayload:
        """Store ``data`` under ``key`` atomically, replacing any previous payload."""

    @abstractmethod
    async def load(self, key: str) -> bytes:
        """Return the payload bytes. Raises StorageKeyError if not found."""

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Check whether a payload is stored under ``key``."""

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete a payload. Returns True if deleted, False if it didn't exist."""


class StorageError(Exception):
    """Base exception for storage errors."""


class StorageKeyError(StorageError, KeyError):
    """Raised when nothing is stored under a key."""


class StoragePermissionError(StorageError):
    """Raised when a key is unsafe or the medium refuses access."""


class StorageQuotaError(StorageError):
    """Raised when the medium is out of space."""
