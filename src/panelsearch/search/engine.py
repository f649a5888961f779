"""Ranked full-text search over the cached inverted index.

Query execution runs in two phases:

1. **Candidates** - the query is tokenized exactly as at build time and the
   posting lists of all its tokens are unioned (any token hit qualifies).
2. **Verification** - each candidate's full text is rescanned for literal,
   case-insensitive occurrences of the whole query string. Candidates with
   no literal occurrence are dropped, and the occurrences found become the
   highlightable matches and the basis of the score.

Searching is synchronous and performs no I/O once the index is resident.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum

from loguru import logger

from ..cache.manager import CacheManager
from ..core.exceptions import InvalidQuery
from ..core.utils.async_helpers import SingleFlight
from ..core.utils.text import iter_occurrences, unique_keywords
from ..corpus.models import Document, IndexSnapshot
from ..corpus.store import DocumentResolver
from .highlight import highlight

DEFAULT_MAX_RESULTS = 50

OCCURRENCE_POINTS = 10
LINE_MATCH_POINTS = 20
SHORT_LINE_POINTS = 15
MEDIUM_LINE_POINTS = 10
LONG_LINE_POINTS = 5
SHORT_LINE_CHARS = 50
MEDIUM_LINE_CHARS = 100


class EngineState(Enum):
    """Engine lifecycle. ``FAILED`` may be retried, re-entering ``LOADING``."""

    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class QueryMatch:
    """One literal occurrence of the query inside a document line.

    Attributes:
        document_id: Document containing the match.
        section_index: Index of the section (panel) within the document.
        line_index: Index of the line within the section.
        start_offset: Offset of the first matched character in ``line``.
        end_offset: Offset one past the last matched character.
        line: The full line, original case.
    """

    document_id: str
    section_index: int
    line_index: int
    start_offset: int
    end_offset: int
    line: str

    @property
    def text(self) -> str:
        """The matched characters, original case."""
        return self.line[self.start_offset : self.end_offset]


@dataclass
class SearchResult:
    """A verified hit with its matches and relevance score (higher is better)."""

    document_id: str
    document: Document
    matches: list[QueryMatch] = field(default_factory=list)
    score: int = 0

    def __repr__(self) -> str:
        return f"SearchResult(document_id='{self.document_id}', score={self.score}, matches={len(self.matches)})"


def find_matches(document: Document, query: str) -> list[QueryMatch]:
    """Every (possibly overlapping) case-insensitive occurrence of ``query`` in ``document``."""
    matches: list[QueryMatch] = []
    for section_index, line_index, line in document.iter_lines():
        for start, end in iter_occurrences(line, query):
            matches.append(
                QueryMatch(
                    document_id=document.id,
                    section_index=section_index,
                    line_index=line_index,
                    start_offset=start,
                    end_offset=end,
                    line=line,
                )
            )
    return matches


def line_length_bonus(line: str) -> int:
    """Shorter lines are more specific utterances and earn more."""
    if len(line) < SHORT_LINE_CHARS:
        return SHORT_LINE_POINTS
    if len(line) < MEDIUM_LINE_CHARS:
        return MEDIUM_LINE_POINTS
    return LONG_LINE_POINTS


def score_matches(matches: list[QueryMatch], query: str) -> int:
    """Relevance of a document from its verified matches.

    ``10`` per occurrence, ``20`` more per occurrence whose line contains the
    whole query, plus a line-length bonus per occurrence.
    """
    needle = query.lower()
    score = len(matches) * OCCURRENCE_POINTS
    score += sum(LINE_MATCH_POINTS for m in matches if needle in m.line.lower())
    score += sum(line_length_bonus(m.line) for m in matches)
    return score


class SearchEngine:
    """Answer ranked, highlightable queries over a cached ``IndexSnapshot``.

    The engine owns its in-memory index; nothing is shared between
    instances except the persistent cache behind ``cache``. Full documents
    for verification come from ``resolver``.

    Example::

        engine = SearchEngine(index_cache, resolver=archive)
        await engine.init()
        for result in engine.search("love", max_results=10):
            print(result.document_id, result.score)
    """

    def __init__(
        self,
        cache: CacheManager[IndexSnapshot],
        resolver: DocumentResolver,
        *,
        default_max_results: int = DEFAULT_MAX_RESULTS,
    ) -> None:
        self.cache = cache
        self.resolver = resolver
        self.default_max_results = default_max_results
        self._state = EngineState.UNINITIALIZED
        self._index: dict[str, tuple[str, ...]] = {}
        self._snapshot: IndexSnapshot | None = None
        self._flight: SingleFlight[None] = SingleFlight()
        self._generation = 0
        self.last_error: BaseException | None = None

    # ===== Lifecycle =====

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state is EngineState.READY

    async def init(self) -> SearchEngine:
        await self.load()
        return self

    async def load(self) -> None:
        """Load the index snapshot. Overlapping calls share one load.

        A load that is still running when ``dispose()`` or ``reload()`` is
        called finishes without touching the engine.
        """
        if self._state is EngineState.READY:
            return
        self._state = EngineState.LOADING
        generation = self._generation
        await self._flight.run(lambda: self._load(generation))

    async def _load(self, generation: int) -> None:
        start = time.perf_counter()
        try:
            snapshot = await self.cache.load()
        except Exception as e:
            if generation == self._generation:
                self._state = EngineState.FAILED
                self.last_error = e
            logger.error(f"Search index failed to load: {e}")
            raise
        if generation != self._generation:
            logger.debug("Discarding search index from a superseded load")
            return
        self._install(snapshot)
        logger.info(
            f"Search index ready: {snapshot.stats.document_count} documents, "
            f"{len(self._index)} tokens in {(time.perf_counter() - start) * 1000:.0f}ms"
        )

    def _install(self, snapshot: IndexSnapshot) -> None:
        self._snapshot = snapshot
        # Ordered and de-duplicated: set semantics with a stable discovery order
        self._index = {token: tuple(dict.fromkeys(ids)) for token, ids in snapshot.word_index.items()}
        self.last_error = None
        self._state = EngineState.READY

    async def reload(self) -> None:
        """Force-refresh the snapshot from the remote locations and rebuild the index."""
        self._generation += 1
        self._flight.forget()
        generation = self._generation
        self._state = EngineState.LOADING
        try:
            snapshot = await self.cache.force_refresh()
        except Exception as e:
            if generation == self._generation:
                self._state = EngineState.FAILED
                self.last_error = e
            raise
        if generation == self._generation:
            self._install(snapshot)

    def dispose(self) -> None:
        """Drop the in-memory index and return to ``UNINITIALIZED``."""
        self._generation += 1
        self._flight.forget()
        self._index = {}
        self._snapshot = None
        self._state = EngineState.UNINITIALIZED

    # ===== Queries =====

    def _require_ready(self) -> None:
        if self._state is not EngineState.READY:
            raise InvalidQuery(f"Search index not loaded (state: {self._state.value}). Call load() first.")

    def candidates(self, query: str) -> list[str]:
        """Ids of documents containing any token of ``query``, in discovery order."""
        self._require_ready()
        found: dict[str, None] = {}
        for token in unique_keywords(query):
            for document_id in self._index.get(token, ()):
                found[document_id] = None
        return list(found)

    def search(self, query: str, max_results: int | None = None) -> list[SearchResult]:
        """Return verified results for ``query``, best first.

        Raises:
            InvalidQuery: if called before the index has loaded.
        """
        self._require_ready()
        limit = self.default_max_results if max_results is None else max_results
        if limit <= 0 or not query or not query.strip():
            return []

        needle = query.strip()
        if not unique_keywords(needle):
            return []

        results: list[SearchResult] = []
        for document_id in self.candidates(needle):
            document = self.resolver.resolve_document(document_id)
            if document is None:
                logger.debug(f"Indexed document {document_id} could not be resolved; skipping")
                continue
            matches = find_matches(document, needle)
            if not matches:
                continue
            results.append(
                SearchResult(
                    document_id=document_id,
                    document=document,
                    matches=matches,
                    score=score_matches(matches, needle),
                )
            )

        # sorted() is stable: equal scores keep discovery order
        results = sorted(results, key=lambda r: r.score, reverse=True)
        return results[:limit]

    def highlight(self, text: str, query: str | None) -> str:
        return highlight(text, query)

    def get_document(self, document_id: str) -> Document | None:
        return self.resolver.resolve_document(document_id)

    def stats(self) -> dict:
        snapshot = self._snapshot
        return {
            "state": self._state.value,
            "total_documents": snapshot.stats.document_count if snapshot else 0,
            "total_words": len(self._index),
            "version": snapshot.version if snapshot else None,
            "cache": self.cache.cache_info(),
        }
