"""Schemas for the transcript corpus and the artifacts built from it.

Every payload crossing a load boundary (corpus files, fetched snapshots,
cached copies) is validated against these models, so malformed data is
rejected before it reaches query logic. Field aliases carry the JSON wire
names; Python code uses the snake_case names.
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .dates import is_valid_document_id

_MODEL_CONFIG = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class Section(BaseModel):
    """One panel of a document: an ordered list of dialogue lines."""

    model_config = _MODEL_CONFIG

    number: int = Field(default=0, alias="panel")
    lines: tuple[str, ...] = Field(default=(), alias="dialogue")


class Document(BaseModel):
    """A dated transcript, uniquely identified by its id."""

    model_config = _MODEL_CONFIG

    id: str = Field(alias="date")
    sections: tuple[Section, ...] = Field(alias="panels")

    @field_validator("id")
    @classmethod
    def _calendar_date(cls, v: str) -> str:
        if not is_valid_document_id(v):
            raise ValueError(f"document id must be a YYYY-MM-DD calendar date, got {v!r}")
        return v

    def iter_lines(self) -> Iterator[tuple[int, int, str]]:
        """Yield ``(section_index, line_index, line)`` in traversal order."""
        for section_index, section in enumerate(self.sections):
            for line_index, line in enumerate(section.lines):
                yield section_index, line_index, line

    @property
    def lines(self) -> list[str]:
        return [line for _, _, line in self.iter_lines()]

    @property
    def full_text(self) -> str:
        return " ".join(self.lines)

    def to_record(self) -> dict[str, Any]:
        """Wire form: ``{"date": ..., "panels": [{"panel": n, "dialogue": [...]}]}``."""
        return self.model_dump(mode="json", by_alias=True)

    def __repr__(self) -> str:
        return f"Document(id='{self.id}', sections={len(self.sections)})"


class IndexStats(BaseModel):
    model_config = _MODEL_CONFIG

    document_count: int = Field(alias="totalDocuments", ge=0)
    token_count: int = Field(alias="totalWords", ge=0)


class IndexSnapshot(BaseModel):
    """Immutable, versioned serialization of the inverted index.

    ``word_index`` maps each token to the ids of documents containing it.
    List order is insertion order and has no meaning; treat each list as a set.
    """

    model_config = _MODEL_CONFIG

    version: str
    generated_at: datetime = Field(alias="generatedAt")
    stats: IndexStats
    word_index: dict[str, list[str]] = Field(alias="wordIndex")

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class ArchiveStats(BaseModel):
    model_config = _MODEL_CONFIG

    document_count: int = Field(alias="totalDocuments", ge=0)


class DocumentArchive(BaseModel):
    """Immutable, versioned bundle of every document, keyed by id.

    Used at query time to verify candidates against their full text.
    """

    model_config = _MODEL_CONFIG

    version: str
    generated_at: datetime = Field(alias="generatedAt")
    stats: ArchiveStats
    documents: dict[str, Document]

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
