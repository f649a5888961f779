"""Versioned local cache for prebuilt artifacts.

``CacheManager`` keeps one artifact (search index or document archive) in
three tiers: in memory, in the local cache, and at an ordered list of remote
locations. Loading follows a freshness protocol:

1. Read the metadata record ``{version, generatedAt, cachedAt, stats}``.
2. If present, probe the primary remote location with a HEAD request. The
   cache is fresh when the probe fails or errors, when ``Last-Modified`` is
   not newer than ``cachedAt``, or (no header) when the cache is younger
   than ``max_age``. Fresh caches are served without a download.
3. Otherwise fetch each remote location in order and take the first valid
   response. The payload is persisted first and the metadata second, so
   metadata never describes a payload that was not written.
4. If every location fails, serve the cached copy if one exists (with a
   warning); otherwise raise ``EngineUnavailable``.

Persistence failures are logged and swallowed: the freshly fetched
artifact stays usable in memory for the rest of the session.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Generic, TypeVar

from loguru import logger
from pydantic import BaseModel, ValidationError

from ..core.exceptions import CacheWriteFailure, EngineUnavailable, NetworkFailure, ParseFailure
from ..core.storage import KeyValueStore, StorageBackend, StorageError, StorageKeyError
from ..core.storage.compression import savings_percent
from ..core.utils.async_helpers import SingleFlight
from ..core.utils.file_io import format_size
from .transport import Transport

M = TypeVar("M", bound=BaseModel)

DEFAULT_MAX_AGE = timedelta(hours=24)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ArtifactSpec(Generic[M]):
    """Everything the cache needs to know about one artifact type.

    Attributes:
        name: Human-readable label used in log messages.
        cache_key: Key of the payload in the async payload store.
        meta_key: Key of the freshness record in the sync key/value store.
        locations: Remote locations, tried in order until one succeeds.
        model: Pydantic model every payload is validated against.
        probe_location: Target of the freshness probe. Defaults to the first location.
    """

    name: str
    cache_key: str
    meta_key: str
    locations: Sequence[str]
    model: type[M]
    probe_location: str | None = None

    def __post_init__(self) -> None:
        if not self.locations:
            raise ValueError(f"{self.name}: at least one remote location is required")
        object.__setattr__(self, "locations", tuple(self.locations))

    @property
    def probe_url(self) -> str:
        return self.probe_location or self.locations[0]


@dataclass
class CacheMetadata:
    """Freshness record stored alongside a cached payload."""

    version: str
    cached_at: datetime
    generated_at: str | None = None
    stats: dict[str, Any] = field(default_factory=dict)

    def to_record(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "generatedAt": self.generated_at,
            "cachedAt": self.cached_at.isoformat(),
            "stats": self.stats,
        }

    @classmethod
    def from_record(cls, record: Any) -> CacheMetadata | None:
        if not isinstance(record, dict) or "cachedAt" not in record:
            return None
        try:
            cached_at = datetime.fromisoformat(str(record["cachedAt"]).replace("Z", "+00:00"))
        except ValueError:
            return None
        if cached_at.tzinfo is None:
            cached_at = cached_at.replace(tzinfo=timezone.utc)
        return cls(
            version=str(record.get("version", "")),
            cached_at=cached_at,
            generated_at=record.get("generatedAt"),
            stats=record.get("stats") or {},
        )


@dataclass
class CacheEntry(Generic[M]):
    """An artifact resident in memory, with where it came from."""

    key: str
    payload: M
    cached_at: datetime | None
    source: str


class CacheManager(Generic[M]):
    """Load one artifact through memory, local cache and remote tiers.

    Overlapping ``load()`` calls share a single in-flight operation.
    """

    def __init__(
        self,
        spec: ArtifactSpec[M],
        *,
        transport: Transport,
        metadata_store: KeyValueStore,
        payload_store: StorageBackend,
        max_age: timedelta = DEFAULT_MAX_AGE,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.spec = spec
        self.transport = transport
        self.metadata_store = metadata_store
        self.payload_store = payload_store
        self.max_age = max_age
        self._clock = clock or _utcnow
        self._entry: CacheEntry[M] | None = None
        self._flight: SingleFlight[M] = SingleFlight()
        self._generation = 0

    # ===== Public API =====

    def get(self) -> M | None:
        """Return the in-memory artifact, or None. Never triggers a load."""
        return self._entry.payload if self._entry is not None else None

    @property
    def entry(self) -> CacheEntry[M] | None:
        return self._entry

    @property
    def is_loading(self) -> bool:
        return self._flight.in_flight

    async def load(self) -> M:
        """Return the artifact, loading it if it is not yet in memory."""
        if self._entry is not None:
            return self._entry.payload
        generation = self._generation
        return await self._flight.run(lambda: self._load(generation, bypass_cache=False))

    async def clear_cache(self) -> None:
        """Delete the persisted payload and its metadata. The in-memory copy is kept."""
        try:
            self.metadata_store.delete(self.spec.meta_key)
            await self.payload_store.delete(self.spec.cache_key)
            logger.info(f"Cleared cached {self.spec.name}")
        except (StorageError, OSError) as e:
            logger.warning(f"Error clearing cached {self.spec.name}: {e}")

    async def force_refresh(self) -> M:
        """Drop every cached copy and load again from the remote locations.

        Any load already in flight is superseded: its callers still get its
        result, but it can no longer update this manager's state.
        """
        await self.clear_cache()
        self._entry = None
        self._generation += 1
        self._flight.forget()
        generation = self._generation
        return await self._flight.run(lambda: self._load(generation, bypass_cache=True))

    def cache_info(self) -> dict[str, Any]:
        """Summary of the persisted copy, read from the metadata store."""
        meta = self._read_metadata()
        if meta is None:
            return {"has_cached_data": False}
        return {
            "has_cached_data": True,
            "version": meta.version,
            "cached_at": meta.cached_at.isoformat(),
            "generated_at": meta.generated_at,
        }

    # ===== Loading =====

    async def _load(self, generation: int, *, bypass_cache: bool) -> M:
        start = time.perf_counter()
        name = self.spec.name

        meta = None if bypass_cache else self._read_metadata()
        if meta is not None:
            if await self._is_cache_fresh(meta):
                cached = await self._read_payload()
                if cached is not None:
                    logger.info(f"Loaded {name} from cache (v{meta.version})")
                    return self._accept(generation, cached, meta.cached_at, "cache", start)
                logger.info(f"Cached {name} metadata has no usable payload; fetching from remote")
            else:
                logger.info(f"Cached {name} is outdated; fetching from remote")

        fetched = await self._fetch_with_fallback()
        if fetched is not None:
            payload, location = fetched
            generated = getattr(payload, "generated_at", None)
            logger.info(f"Downloaded {name} (v{getattr(payload, 'version', '?')}) from {location} (generated {generated})")
            cached_at = None
            if generation == self._generation:
                try:
                    cached_at = await self._write_cache(payload, generation)
                except CacheWriteFailure as e:
                    logger.warning(f"Failed to cache {name}; continuing with in-memory copy: {e}")
            return self._accept(generation, payload, cached_at, location, start)

        stale_meta = self._read_metadata()
        stale = await self._read_payload() if stale_meta is not None else None
        if stale is not None and stale_meta is not None:
            logger.warning(f"All remote locations failed; using stale cached {name} (v{stale_meta.version})")
            return self._accept(generation, stale, stale_meta.cached_at, "stale-cache", start)

        raise EngineUnavailable(f"{name} unavailable: every remote location failed and no cached copy exists")

    def _accept(self, generation: int, payload: M, cached_at: datetime | None, source: str, start: float) -> M:
        if generation == self._generation:
            self._entry = CacheEntry(key=self.spec.cache_key, payload=payload, cached_at=cached_at, source=source)
            logger.debug(f"{self.spec.name} ready in {(time.perf_counter() - start) * 1000:.0f}ms (source: {source})")
        else:
            logger.debug(f"Discarding superseded {self.spec.name} load from {source}")
        return payload

    async def _fetch_with_fallback(self) -> tuple[M, str] | None:
        for location in self.spec.locations:
            try:
                raw = await self.transport.fetch_json(location)
                return self._validate(raw, location), location
            except NetworkFailure as e:
                logger.warning(f"Fetching {self.spec.name} from {location} failed: {e.reason}")
        return None

    def _validate(self, raw: Any, location: str) -> M:
        try:
            return self.spec.model.model_validate(raw)
        except ValidationError as e:
            raise ParseFailure(location, f"payload failed validation ({e.error_count()} error(s))") from e

    async def _is_cache_fresh(self, meta: CacheMetadata) -> bool:
        try:
            probe = await self.transport.probe(self.spec.probe_url)
        except NetworkFailure as e:
            logger.warning(f"Freshness probe for {self.spec.name} failed ({e.reason}); assuming cache is valid")
            return True

        if not probe.ok:
            return True
        if probe.last_modified is not None:
            return probe.last_modified <= meta.cached_at
        return self._clock() - meta.cached_at < self.max_age

    # ===== Cache stores =====

    def _read_metadata(self) -> CacheMetadata | None:
        try:
            record = self.metadata_store.get(self.spec.meta_key)
        except (StorageError, OSError) as e:
            logger.warning(f"Error reading {self.spec.name} cache metadata: {e}")
            return None
        if record is None:
            return None
        meta = CacheMetadata.from_record(record)
        if meta is None:
            logger.warning(f"Ignoring malformed {self.spec.name} cache metadata")
        return meta

    async def _read_payload(self) -> M | None:
        try:
            data = await self.payload_store.load(self.spec.cache_key)
        except StorageKeyError:
            return None
        except (StorageError, OSError) as e:
            logger.warning(f"Error loading {self.spec.name} from cache: {e}")
            return None
        try:
            return self.spec.model.model_validate_json(data)
        except ValidationError as e:
            logger.warning(f"Cached {self.spec.name} is malformed ({e.error_count()} error(s)); ignoring it")
            return None

    async def _write_cache(self, payload: M, generation: int) -> datetime | None:
        """Persist payload then metadata. Raises CacheWriteFailure on any store error.

        Returns None without writing metadata when a refresh superseded this
        load while the payload was being saved.
        """
        data = payload.model_dump_json(by_alias=True).encode("utf-8")
        cached_at = self._clock()
        try:
            stored = await self.payload_store.save(self.spec.cache_key, data, content_type="application/json")
        except (StorageError, OSError) as e:
            raise CacheWriteFailure(f"payload write failed: {e}") from e

        if generation != self._generation:
            logger.debug(f"Not recording metadata for superseded {self.spec.name} load")
            return None

        meta = CacheMetadata(
            version=str(getattr(payload, "version", "")),
            cached_at=cached_at,
            generated_at=self._generated_at(payload),
            stats=self._stats(payload),
        )
        try:
            self.metadata_store.set(self.spec.meta_key, meta.to_record())
        except (StorageError, OSError) as e:
            try:
                await self.payload_store.delete(self.spec.cache_key)
            except (StorageError, OSError) as cleanup_error:
                logger.debug(f"Could not remove orphaned {self.spec.name} payload: {cleanup_error}")
            raise CacheWriteFailure(f"metadata write failed: {e}") from e

        if self.payload_store.persistent:
            ratio = savings_percent(stored.size, stored.stored_size)
            logger.info(f"Cached {self.spec.name} ({format_size(len(data))}, {ratio:.0f}% saved on disk)")
        else:
            logger.debug(f"Cached {self.spec.name} in memory only ({format_size(len(data))})")
        return cached_at

    @staticmethod
    def _generated_at(payload: BaseModel) -> str | None:
        value = getattr(payload, "generated_at", None)
        return value.isoformat() if isinstance(value, datetime) else value

    @staticmethod
    def _stats(payload: BaseModel) -> dict[str, Any]:
        stats = getattr(payload, "stats", None)
        return stats.model_dump(by_alias=True) if isinstance(stats, BaseModel) else {}
