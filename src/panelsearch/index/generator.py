"""Inverted-index generator.

Scans a transcript corpus offline and emits two versioned artifacts:

- the search index snapshot (``token -> [document ids]``), consumed by
  ``SearchEngine``;
- the document archive (``id -> document``), consumed at query time to
  verify candidates against their full text.

Each artifact is written twice, minified (``*.min.json``, fetched at
runtime) and optionally formatted for inspection. Both writes are atomic.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import BaseModel, ValidationError

from ..core.utils.file_io import format_size, write_json
from ..core.utils.text import extract_keywords
from ..corpus.models import ArchiveStats, Document, DocumentArchive, IndexSnapshot, IndexStats

INDEX_VERSION = "1.0"
INDEX_FILENAME = "search-index.json"
ARCHIVE_FILENAME = "document-archive.json"


def minified_path(path: str | Path) -> Path:
    """``search-index.json`` -> ``search-index.min.json``."""
    path = Path(path)
    return path.with_name(f"{path.stem}.min{path.suffix or '.json'}")


@dataclass
class GenerationReport:
    """Summary of one generator run."""

    documents_indexed: int = 0
    documents_skipped: int = 0
    token_count: int = 0
    files: dict[str, int] = field(default_factory=dict)
    duration_ms: float = 0.0


class IndexGenerator:
    """Build an ``IndexSnapshot`` (and ``DocumentArchive``) from a corpus.

    Corpus entries may be ``Document`` instances or raw transcript records
    (``{"date": ..., "panels": [...]}``). Records that fail validation are
    logged and skipped; one bad record never aborts generation.

    Example::

        generator = IndexGenerator()
        snapshot = generator.generate(DirectoryDocumentStore("transcripts").iter_documents())
        generator.write(snapshot, "static/search-index.json")
    """

    def __init__(self, version: str = INDEX_VERSION, clock: Callable[[], datetime] | None = None):
        self.version = version
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.skipped = 0

    def _coerce(self, entry: Document | Mapping[str, Any]) -> Document | None:
        if isinstance(entry, Document):
            return entry
        if not isinstance(entry, Mapping):
            logger.warning(f"Skipping corpus entry of unexpected type {type(entry).__name__}")
            return None
        try:
            return Document.model_validate(entry)
        except ValidationError as e:
            label = entry.get("date", "<no id>")
            logger.warning(f"Skipping malformed document {label}: {e.error_count()} validation error(s)")
            return None

    def _documents(self, corpus: Iterable[Document | Mapping[str, Any]]) -> dict[str, Document]:
        self.skipped = 0
        documents: dict[str, Document] = {}
        for entry in corpus:
            doc = self._coerce(entry)
            if doc is None:
                self.skipped += 1
                continue
            if doc.id in documents:
                logger.debug(f"Duplicate document id {doc.id}; keeping the later record")
            documents[doc.id] = doc
        return documents

    @staticmethod
    def build_word_index(documents: Iterable[Document]) -> dict[str, list[str]]:
        """Map every token to the ids of the documents containing it."""
        postings: dict[str, dict[str, None]] = {}
        for doc in documents:
            for token in extract_keywords(doc.full_text):
                postings.setdefault(token, {})[doc.id] = None
        return {token: list(ids) for token, ids in postings.items()}

    def generate(self, corpus: Iterable[Document | Mapping[str, Any]]) -> IndexSnapshot:
        """Tokenize every document and return the inverted-index snapshot."""
        start = time.perf_counter()
        documents = self._documents(corpus)
        word_index = self.build_word_index(documents.values())

        snapshot = IndexSnapshot(
            version=self.version,
            generated_at=self._clock(),
            stats=IndexStats(document_count=len(documents), token_count=len(word_index)),
            word_index=word_index,
        )
        elapsed = (time.perf_counter() - start) * 1000
        logger.info(
            f"Indexed {len(documents)} documents ({self.skipped} skipped), "
            f"{len(word_index)} unique tokens in {elapsed:.0f}ms"
        )
        return snapshot

    def build_archive(self, corpus: Iterable[Document | Mapping[str, Any]]) -> DocumentArchive:
        """Bundle every valid document into a versioned archive."""
        documents = self._documents(corpus)
        return DocumentArchive(
            version=self.version,
            generated_at=self._clock(),
            stats=ArchiveStats(document_count=len(documents)),
            documents=documents,
        )

    @staticmethod
    def write(artifact: BaseModel, path: str | Path, *, formatted: bool = True) -> dict[str, int]:
        """Write ``artifact`` as minified JSON (and a formatted copy at ``path``).

        Returns a mapping of written file path to size in bytes.
        """
        payload = artifact.model_dump(mode="json", by_alias=True)
        written: dict[str, int] = {}

        min_path = minified_path(path)
        written[str(min_path)] = write_json(min_path, payload)
        if formatted:
            written[str(path)] = write_json(path, payload, indent=2)

        for file_path, size in written.items():
            logger.info(f"Wrote {file_path} ({format_size(size)})")
        return written

    def generate_to(
        self,
        corpus: Iterable[Document | Mapping[str, Any]],
        output_dir: str | Path,
        *,
        formatted: bool = True,
    ) -> GenerationReport:
        """Generate both artifacts from ``corpus`` and write them under ``output_dir``."""
        start = time.perf_counter()
        documents = list(self._documents(corpus).values())
        skipped = self.skipped

        output_dir = Path(output_dir)
        report = GenerationReport(documents_indexed=len(documents), documents_skipped=skipped)

        snapshot = self.generate(documents)
        report.token_count = snapshot.stats.token_count
        report.files.update(self.write(snapshot, output_dir / INDEX_FILENAME, formatted=formatted))

        archive = self.build_archive(documents)
        report.files.update(self.write(archive, output_dir / ARCHIVE_FILENAME, formatted=formatted))

        self.skipped = skipped
        report.duration_ms = (time.perf_counter() - start) * 1000
        return report
