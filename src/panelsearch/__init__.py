"""panelsearch: client-side full-text search over dated dialogue transcripts.

Build a versioned inverted index from a transcript corpus, cache it locally
with a remote freshness check, and answer ranked, highlightable queries.
"""

__version__ = "0.1.0"

from .core.exceptions import (
    CacheWriteFailure,
    ConfigurationError,
    EngineUnavailable,
    InvalidQuery,
    NetworkFailure,
    PanelSearchError,
    ParseFailure,
)
from .corpus.models import Document, DocumentArchive, IndexSnapshot, Section
from .search.engine import EngineState, QueryMatch, SearchEngine, SearchResult
from .search.highlight import highlight, strip_highlight
from .service import SearchService

__all__ = [
    "CacheWriteFailure",
    "ConfigurationError",
    "Document",
    "DocumentArchive",
    "EngineState",
    "EngineUnavailable",
    "IndexSnapshot",
    "InvalidQuery",
    "NetworkFailure",
    "PanelSearchError",
    "ParseFailure",
    "QueryMatch",
    "SearchEngine",
    "SearchResult",
    "SearchService",
    "Section",
    "__version__",
    "highlight",
    "strip_highlight",
]
