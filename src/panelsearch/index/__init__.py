"""Build-time index generation."""

from .generator import ARCHIVE_FILENAME, INDEX_FILENAME, INDEX_VERSION, GenerationReport, IndexGenerator

__all__ = ["ARCHIVE_FILENAME", "INDEX_FILENAME", "INDEX_VERSION", "GenerationReport", "IndexGenerator"]
