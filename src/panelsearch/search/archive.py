"""Document lookup backed by the cached document archive."""

from __future__ import annotations

from ..cache.manager import CacheManager
from ..corpus.models import Document, DocumentArchive


class DocumentArchiveResolver:
    """``resolve_document`` over a ``DocumentArchive`` loaded through a ``CacheManager``.

    Lookups are synchronous and never trigger I/O: before ``load()`` has
    completed every lookup returns None.
    """

    def __init__(self, cache: CacheManager[DocumentArchive]):
        self.cache = cache

    async def load(self) -> DocumentArchive:
        return await self.cache.load()

    @property
    def is_loaded(self) -> bool:
        return self.cache.get() is not None

    def resolve_document(self, document_id: str) -> Document | None:
        archive = self.cache.get()
        if archive is None:
            return None
        return archive.documents.get(document_id)

    def available_ids(self) -> list[str]:
        archive = self.cache.get()
        return sorted(archive.documents) if archive is not None else []

    def stats(self) -> dict:
        archive = self.cache.get()
        return {
            "total_documents": len(archive.documents) if archive is not None else 0,
            "is_loaded": archive is not None,
            "cache": self.cache.cache_info(),
        }
