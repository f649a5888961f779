"""Layered artifact cache: memory, local stores, and ordered remote fallback."""

from .manager import ArtifactSpec, CacheEntry, CacheManager, CacheMetadata
from .transport import HttpTransport, ProbeResult, Transport, parse_http_date

__all__ = [
    "ArtifactSpec",
    "CacheEntry",
    "CacheManager",
    "CacheMetadata",
    "HttpTransport",
    "ProbeResult",
    "Transport",
    "parse_http_date",
]
