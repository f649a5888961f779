"""
Storage backends for panelsearch.

Provides a sync key/value store for cache metadata and an async payload
store, each with a local filesystem and an in-memory implementation.
"""

from .base import (
    KeyValueStore,
    StorageBackend,
    StorageError,
    StorageKeyError,
    StoragePermissionError,
    StorageQuotaError,
    StoredPayload,
)
from .compression import CompressionType, compression_for, decode_payload, encode_payload, savings_percent
from .local import JsonFileKeyValueStore, LocalStorage
from .memory import MemoryKeyValueStore, MemoryStorage, NullStorage, detect_storage, is_writable_directory

__all__ = [
    "CompressionType",
    "JsonFileKeyValueStore",
    "KeyValueStore",
    "LocalStorage",
    "MemoryKeyValueStore",
    "MemoryStorage",
    "NullStorage",
    "StorageBackend",
    "StorageError",
    "StorageKeyError",
    "StoragePermissionError",
    "StorageQuotaError",
    "StoredPayload",
    "compression_for",
    "decode_payload",
    "detect_storage",
    "encode_payload",
    "is_writable_directory",
    "savings_percent",
]
