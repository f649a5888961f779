"""
Payload compression for on-disk caches.

JSON artifacts shrink by roughly an order of magnitude under gzip. Decoding
sniffs the gzip magic number instead of trusting a file name, so a payload
written by an older version with a different layout still loads.
"""

import gzip
from enum import Enum

GZIP_MAGIC = b"\x1f\x8b"

# Formats that are already compressed gain nothing from gzip
_PRECOMPRESSED = ("image/", "video/", "audio/", "zip", "gzip")


class CompressionType(Enum):
    NONE = "none"
    GZIP = "gzip"

    @property
    def suffix(self) -> str:
        """File-name suffix for payloads stored with this compression."""
        return ".gz" if self is CompressionType.GZIP else ""


def compression_for(content_type: str) -> CompressionType:
    """Pick the compression for a payload of the given MIME type."""
    if any(marker in content_type for marker in _PRECOMPRESSED):
        return CompressionType.NONE
    return CompressionType.GZIP


def encode_payload(data: bytes, compression: CompressionType) -> bytes:
    if compression is CompressionType.NONE:
        return data
    # mtime=0: identical payloads produce identical bytes
    return gzip.compress(data, compresslevel=6, mtime=0)


def decode_payload(data: bytes) -> bytes:
    """Return the raw payload, decompressing if ``data`` is gzip-encoded."""
    if data[:2] == GZIP_MAGIC:
        return gzip.decompress(data)
    return data


def savings_percent(original_size: int, stored_size: int) -> float:
    """How much smaller the stored form is, as a percentage (0-100)."""
    if original_size == 0:
        return 0.0
    return (1 - stored_size / original_size) * 100
