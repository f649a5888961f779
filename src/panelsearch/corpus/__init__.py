"""Corpus models and read-only collaborators (document and asset lookup)."""

from .assets import AssetResolver, TemplateAssetResolver
from .models import ArchiveStats, Document, DocumentArchive, IndexSnapshot, IndexStats, Section
from .store import DirectoryDocumentStore, DocumentResolver, DocumentStore, InMemoryDocumentStore

__all__ = [
    "ArchiveStats",
    "AssetResolver",
    "DirectoryDocumentStore",
    "Document",
    "DocumentArchive",
    "DocumentResolver",
    "DocumentStore",
    "InMemoryDocumentStore",
    "IndexSnapshot",
    "IndexStats",
    "Section",
    "TemplateAssetResolver",
]
