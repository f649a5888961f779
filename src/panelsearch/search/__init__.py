"""Query execution: engine, highlighting, debouncing, archive-backed lookup."""

from .archive import DocumentArchiveResolver
from .debounce import SearchDebouncer
from .engine import EngineState, QueryMatch, SearchEngine, SearchResult, find_matches, score_matches
from .highlight import highlight, strip_highlight

__all__ = [
    "DocumentArchiveResolver",
    "EngineState",
    "QueryMatch",
    "SearchDebouncer",
    "SearchEngine",
    "SearchResult",
    "find_matches",
    "highlight",
    "score_matches",
    "strip_highlight",
]
