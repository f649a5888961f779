"""Shared test fixtures for panelsearch."""

import asyncio
import os
import tempfile
from datetime import datetime, timezone

import pytest

from panelsearch.cache.transport import ProbeResult
from panelsearch.core.exceptions import NetworkFailure
from panelsearch.corpus.models import Document
from panelsearch.corpus.store import InMemoryDocumentStore
from panelsearch.index.generator import IndexGenerator

FIXED_NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def make_document(document_id: str, *panels: list[str]) -> Document:
    """Build a Document from lists of dialogue lines, one list per panel."""
    return Document.model_validate(
        {"date": document_id, "panels": [{"panel": i + 1, "dialogue": lines} for i, lines in enumerate(panels)]}
    )


class FakeTransport:
    """In-memory transport: maps locations to JSON payloads and records calls.

    A location mapped to an exception instance raises it. ``delay`` makes
    fetches suspend so concurrent callers can pile up.
    """

    def __init__(self, payloads=None, *, probe=None, delay: float = 0.0):
        self.payloads = dict(payloads or {})
        self.probe_result = probe if probe is not None else ProbeResult(ok=True)
        self.delay = delay
        self.fetches: list[str] = []
        self.probes: list[str] = []

    async def fetch_json(self, location):
        self.fetches.append(location)
        value = self.payloads.get(location)
        if self.delay:
            await asyncio.sleep(self.delay)
        if value is None:
            raise NetworkFailure(location, "HTTP 404")
        if isinstance(value, Exception):
            raise value
        return value

    async def probe(self, location):
        self.probes.append(location)
        if isinstance(self.probe_result, Exception):
            raise self.probe_result
        return self.probe_result


@pytest.fixture
def tmp_dir():
    """Provide a temporary directory that is cleaned up after the test."""
    with tempfile.TemporaryDirectory() as d:
        yield d


@pytest.fixture
def sample_documents():
    return [
        make_document("2020-01-01", ["I love mondays"], ["Said no one ever."]),
        make_document("2020-01-02", ["The boss wants a status report.", "Again?"]),
        make_document(
            "2020-01-03",
            ["Love is a strong word for a spreadsheet."],
            ["I do love a good pivot table, love it, love it."],
        ),
        make_document("2020-01-04", ["Meetings about meetings.", "Is this a meeting?"]),
    ]


@pytest.fixture
def corpus(sample_documents):
    return InMemoryDocumentStore(sample_documents)


@pytest.fixture
def snapshot(sample_documents):
    return IndexGenerator(clock=lambda: FIXED_NOW).generate(sample_documents)


@pytest.fixture
def archive(sample_documents):
    return IndexGenerator(clock=lambda: FIXED_NOW).build_archive(sample_documents)


@pytest.fixture
def corpus_dir(tmp_path, sample_documents):
    """Write sample documents as <root>/<year>/<id>.json."""
    import json

    root = tmp_path / "transcripts"
    for doc in sample_documents:
        year_dir = root / doc.id[:4]
        year_dir.mkdir(parents=True, exist_ok=True)
        (year_dir / f"{doc.id}.json").write_text(json.dumps(doc.to_record()), encoding="utf-8")
    return root


@pytest.fixture
def clean_env(monkeypatch):
    """Remove PANELSEARCH_* variables so config tests see only their own."""
    for key in list(os.environ):
        if key.startswith("PANELSEARCH_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def tmp_config_file(tmp_dir):
    """Create a temporary YAML config file."""
    import yaml

    config_data = {
        "paths": {
            "data_dir": os.path.join(tmp_dir, "data"),
            "cache_dir": os.path.join(tmp_dir, "cache"),
        },
        "remote": {
            "index_urls": ["https://mirror.example/search-index.min.json"],
            "archive_urls": ["https://mirror.example/document-archive.min.json"],
        },
    }
    config_path = os.path.join(tmp_dir, "config.yaml")
    with open(config_path, "w") as f:
        yaml.dump(config_data, f)
    return config_path


@pytest.fixture
def make_doc():
    """Factory for Documents: ``make_doc("2020-01-01", ["line", ...], ...)``."""
    return make_document


@pytest.fixture
def transport_cls():
    """The in-memory ``FakeTransport`` class, for tests that build their own."""
    return FakeTransport


INDEX_URL = "https://mirror.example/search-index.min.json"
ARCHIVE_URL = "https://mirror.example/document-archive.min.json"


@pytest.fixture
def build_engine(snapshot, corpus):
    """Factory for a SearchEngine over the sample corpus.

    Returns ``(engine, transport)``. By default the transport serves the
    sample snapshot at ``INDEX_URL``.
    """
    from panelsearch.cache.manager import ArtifactSpec, CacheManager
    from panelsearch.core.storage import MemoryKeyValueStore, MemoryStorage
    from panelsearch.corpus.models import IndexSnapshot
    from panelsearch.search.engine import SearchEngine

    def build(payloads=None, resolver=None, **kwargs):
        transport = FakeTransport({INDEX_URL: snapshot.to_wire()} if payloads is None else payloads)
        cache = CacheManager(
            ArtifactSpec(
                name="search index",
                cache_key="search-index.json",
                meta_key="search-index-meta",
                locations=[INDEX_URL],
                model=IndexSnapshot,
            ),
            transport=transport,
            metadata_store=MemoryKeyValueStore(),
            payload_store=MemoryStorage(),
        )
        return SearchEngine(cache, resolver or corpus, **kwargs), transport

    return build
