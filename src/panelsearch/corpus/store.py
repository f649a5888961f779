"""DocumentStore protocol: the contract for transcript corpora.

The corpus is the source of truth both for index generation and for the
full-text verification step at query time. Anything that can list dated
transcripts (a directory of JSON files, a bundled archive, a test fixture)
can implement this protocol.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Protocol, runtime_checkable

from loguru import logger
from pydantic import ValidationError

from .dates import is_valid_document_id, year_of
from .models import Document


@runtime_checkable
class DocumentResolver(Protocol):
    """Read-only lookup of a single document by id."""

    def resolve_document(self, document_id: str) -> Document | None:
        """Return the full document, or None if unknown."""
        ...


@runtime_checkable
class DocumentStore(DocumentResolver, Protocol):
    """Protocol for a complete transcript corpus."""

    def iter_documents(self) -> Iterator[Document]:
        """Yield every readable document. Unreadable entries are skipped."""
        ...


class InMemoryDocumentStore:
    """Corpus held in a dict, mainly for tests and small fixtures."""

    def __init__(self, documents: Iterable[Document] = ()):
        self._documents: dict[str, Document] = {}
        for doc in documents:
            self.add(doc)

    def add(self, document: Document) -> None:
        self._documents[document.id] = document

    def __len__(self) -> int:
        return len(self._documents)

    def iter_documents(self) -> Iterator[Document]:
        yield from self._documents.values()

    def resolve_document(self, document_id: str) -> Document | None:
        return self._documents.get(document_id)


class DirectoryDocumentStore:
    """Corpus laid out on disk as ``<root>/<year>/<YYYY-MM-DD>.json``.

    Each file holds one transcript record. Files that cannot be read,
    are not valid JSON, or fail schema validation are logged and skipped.
    """

    def __init__(self, root: str | Path):
        self.root = Path(root).expanduser()

    def _year_dirs(self) -> list[Path]:
        if not self.root.is_dir():
            logger.warning(f"Corpus directory not found: {self.root}")
            return []
        return sorted(p for p in self.root.iterdir() if p.is_dir() and p.name.isdigit())

    def list_paths(self) -> list[Path]:
        """Return transcript paths, sorted chronologically."""
        paths: list[Path] = []
        for year_dir in self._year_dirs():
            try:
                paths.extend(sorted(year_dir.glob("*.json")))
            except OSError as e:
                logger.warning(f"Failed to read directory {year_dir}: {e}")
        return paths

    def read_document(self, path: Path) -> Document | None:
        """Parse one transcript file, returning None (and logging) when it is unusable."""
        try:
            record = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning(f"Skipping unreadable transcript {path.name}: {e}")
            return None
        try:
            return Document.model_validate(record)
        except ValidationError as e:
            logger.warning(f"Skipping malformed transcript {path.name}: {e.error_count()} validation error(s)")
            return None

    def iter_documents(self) -> Iterator[Document]:
        for path in self.list_paths():
            doc = self.read_document(path)
            if doc is not None:
                yield doc

    def resolve_document(self, document_id: str) -> Document | None:
        if not is_valid_document_id(document_id):
            return None
        path = self.root / year_of(document_id) / f"{document_id}.json"
        if not path.exists():
            return None
        return self.read_document(path)
