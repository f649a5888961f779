"""SearchService: wiring of caches, collaborators and the engine.

One explicitly constructed service per application replaces module-level
singletons. Build it from configuration (``SearchService.from_config``) or
inject the collaborators directly in tests.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from loguru import logger

from .cache.manager import ArtifactSpec, CacheManager
from .cache.transport import HttpTransport, Transport
from .core.config import Config, get_config
from .core.exceptions import InvalidQuery
from .core.storage import KeyValueStore, MemoryKeyValueStore, NullStorage, StorageBackend, detect_storage
from .corpus.assets import AssetResolver, TemplateAssetResolver
from .corpus.models import Document, DocumentArchive, IndexSnapshot
from .search.archive import DocumentArchiveResolver
from .search.debounce import DEFAULT_DELAY, SearchDebouncer
from .search.engine import DEFAULT_MAX_RESULTS, SearchEngine, SearchResult
from .search.highlight import highlight

INDEX_CACHE_KEY = "search-index.json"
INDEX_META_KEY = "search-index-meta"
ARCHIVE_CACHE_KEY = "document-archive.json"
ARCHIVE_META_KEY = "document-archive-meta"


class SearchService:
    """Search over the cached index, verified against the cached document archive."""

    def __init__(
        self,
        *,
        index_cache: CacheManager[IndexSnapshot],
        archive_cache: CacheManager[DocumentArchive],
        assets: AssetResolver | None = None,
        default_max_results: int = DEFAULT_MAX_RESULTS,
        debounce_delay: float = DEFAULT_DELAY,
    ) -> None:
        self.archive = DocumentArchiveResolver(archive_cache)
        self.engine = SearchEngine(index_cache, self.archive, default_max_results=default_max_results)
        self.assets = assets
        self.debounce_delay = debounce_delay

    @classmethod
    def from_config(
        cls,
        config: Config | None = None,
        *,
        transport: Transport | None = None,
        stores: tuple[KeyValueStore, StorageBackend] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> SearchService:
        cfg = (config or get_config()).validated()

        if stores is not None:
            metadata_store, payload_store = stores
        elif cfg.cache.enabled:
            metadata_store, payload_store = detect_storage(cfg.paths.cache_dir or Path(cfg.paths.data_dir) / "cache")
        else:
            metadata_store, payload_store = MemoryKeyValueStore(), NullStorage()

        transport = transport or HttpTransport(timeout=cfg.remote.timeout)
        shared = dict(
            transport=transport,
            metadata_store=metadata_store,
            payload_store=payload_store,
            max_age=cfg.cache.max_age,
            clock=clock,
        )
        index_cache = CacheManager(
            ArtifactSpec(
                name="search index",
                cache_key=INDEX_CACHE_KEY,
                meta_key=INDEX_META_KEY,
                locations=cfg.remote.index_urls,
                model=IndexSnapshot,
                probe_location=cfg.remote.probe_url,
            ),
            **shared,
        )
        archive_cache = CacheManager(
            ArtifactSpec(
                name="document archive",
                cache_key=ARCHIVE_CACHE_KEY,
                meta_key=ARCHIVE_META_KEY,
                locations=cfg.remote.archive_urls,
                model=DocumentArchive,
            ),
            **shared,
        )
        return cls(
            index_cache=index_cache,
            archive_cache=archive_cache,
            assets=TemplateAssetResolver(cfg.assets.url_template),
            default_max_results=cfg.search.max_results,
            debounce_delay=cfg.search.debounce_ms / 1000,
        )

    # ===== Lifecycle =====

    async def init(self) -> SearchService:
        """Load the document archive and the search index concurrently."""
        logger.info("Initializing search service...")
        await asyncio.gather(self.archive.load(), self.engine.load())
        logger.info("Search service ready")
        return self

    def dispose(self) -> None:
        self.engine.dispose()

    @property
    def is_available(self) -> bool:
        return self.engine.is_ready and self.archive.is_loaded

    # ===== Queries and lookups =====

    def search(self, query: str, max_results: int | None = None) -> list[SearchResult]:
        """Search the index and verify candidates against the document archive.

        Raises:
            InvalidQuery: until both the index and the document archive have
                loaded.
        """
        if self.engine.is_ready and not self.archive.is_loaded:
            raise InvalidQuery("Document archive not loaded. Call init() first.")
        return self.engine.search(query, max_results)

    def highlight(self, text: str, query: str | None) -> str:
        return highlight(text, query)

    def debouncer(self, delay: float | None = None) -> SearchDebouncer:
        return SearchDebouncer(self, self.debounce_delay if delay is None else delay)

    def resolve_document(self, document_id: str) -> Document | None:
        return self.archive.resolve_document(document_id)

    def resolve_display_asset(self, document_id: str) -> str | None:
        return self.assets.resolve_display_asset(document_id) if self.assets else None

    # ===== Maintenance =====

    def stats(self) -> dict:
        return {"index": self.engine.stats(), "documents": self.archive.stats()}

    async def clear_all_caches(self) -> None:
        await asyncio.gather(self.engine.cache.clear_cache(), self.archive.cache.clear_cache())
        logger.info("All caches cleared")

    async def refresh_all(self) -> None:
        await asyncio.gather(self.archive.cache.force_refresh(), self.engine.reload())
        logger.info("All artifacts refreshed")
