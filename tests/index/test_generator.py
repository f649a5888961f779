"""Tests for panelsearch.index.generator."""

import json
from datetime import datetime, timezone

import pytest

from panelsearch.corpus.models import DocumentArchive, IndexSnapshot
from panelsearch.corpus.store import DirectoryDocumentStore
from panelsearch.index.generator import (
    ARCHIVE_FILENAME,
    INDEX_FILENAME,
    IndexGenerator,
    minified_path,
)

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def generator():
    return IndexGenerator(clock=lambda: NOW)


class TestGenerate:
    def test_word_index(self, generator, sample_documents):
        snapshot = generator.generate(sample_documents)
        assert snapshot.version == "1.0"
        assert snapshot.generated_at == NOW
        assert set(snapshot.word_index["love"]) == {"2020-01-01", "2020-01-03"}
        assert snapshot.word_index["mondays"] == ["2020-01-01"]
        assert "meetings" in snapshot.word_index
        assert "meeting" in snapshot.word_index

    def test_stats(self, generator, sample_documents):
        snapshot = generator.generate(sample_documents)
        assert snapshot.stats.document_count == 4
        assert snapshot.stats.token_count == len(snapshot.word_index)

    def test_each_id_listed_once_per_token(self, generator, sample_documents):
        # 2020-01-03 says "love" four times
        snapshot = generator.generate(sample_documents)
        assert snapshot.word_index["love"].count("2020-01-03") == 1

    def test_two_character_words_never_indexed(self, generator, make_doc):
        snapshot = generator.generate([make_doc("2020-01-01", ["Is it ok to go?"])])
        assert set(snapshot.word_index) == set()
        assert snapshot.stats.document_count == 1

    def test_three_character_words_indexed(self, generator, make_doc):
        snapshot = generator.generate([make_doc("2020-01-01", ["Bob the cat"])])
        assert set(snapshot.word_index) == {"bob", "the", "cat"}

    def test_tokens_lowercased_and_punctuation_stripped(self, generator, make_doc):
        snapshot = generator.generate([make_doc("2020-01-01", ["WOW!!! Re-organize, now."])])
        assert set(snapshot.word_index) == {"wow", "organize", "now"}

    def test_lines_joined_across_panels(self, generator, make_doc):
        snapshot = generator.generate([make_doc("2020-01-01", ["first"], ["second"])])
        assert set(snapshot.word_index) == {"first", "second"}

    def test_idempotent(self, generator, sample_documents):
        first = generator.generate(sample_documents).word_index
        second = generator.generate(sample_documents).word_index
        assert {t: set(ids) for t, ids in first.items()} == {t: set(ids) for t, ids in second.items()}

    def test_empty_corpus(self, generator):
        snapshot = generator.generate([])
        assert snapshot.word_index == {}
        assert snapshot.stats.document_count == 0

    def test_raw_records_accepted(self, generator):
        snapshot = generator.generate([{"date": "2020-01-01", "panels": [{"panel": 1, "dialogue": ["hello world"]}]}])
        assert snapshot.word_index == {"hello": ["2020-01-01"], "world": ["2020-01-01"]}

    def test_malformed_entries_skipped(self, generator, sample_documents):
        corpus = [
            {"date": "not-a-date", "panels": []},
            {"panels": [{"dialogue": ["missing id"]}]},
            "a string",
            *sample_documents,
            {"date": "2020-01-05", "panels": "oops"},
        ]
        snapshot = generator.generate(corpus)
        assert snapshot.stats.document_count == 4
        assert generator.skipped == 4
        assert "missing" not in snapshot.word_index

    def test_duplicate_id_keeps_later_record(self, generator, make_doc):
        snapshot = generator.generate([make_doc("2020-01-01", ["alpha"]), make_doc("2020-01-01", ["beta"])])
        assert set(snapshot.word_index) == {"beta"}
        assert snapshot.stats.document_count == 1

    def test_custom_version(self, sample_documents):
        assert IndexGenerator(version="2.3").generate(sample_documents).version == "2.3"


class TestBuildArchive:
    def test_archive(self, generator, sample_documents):
        archive = generator.build_archive(sample_documents)
        assert archive.stats.document_count == 4
        assert archive.documents["2020-01-02"].lines[1] == "Again?"


class TestWrite:
    def test_minified_path(self):
        assert minified_path("out/search-index.json").name == "search-index.min.json"

    def test_writes_minified_and_formatted(self, generator, sample_documents, tmp_path):
        snapshot = generator.generate(sample_documents)
        written = generator.write(snapshot, tmp_path / INDEX_FILENAME)

        min_file = tmp_path / "search-index.min.json"
        formatted_file = tmp_path / INDEX_FILENAME
        assert set(written) == {str(min_file), str(formatted_file)}
        assert written[str(min_file)] == min_file.stat().st_size
        assert "\n" not in min_file.read_text()
        assert formatted_file.read_text().startswith("{\n  ")

        reloaded = IndexSnapshot.model_validate_json(min_file.read_text())
        assert reloaded == snapshot

    def test_wire_keys(self, generator, sample_documents, tmp_path):
        generator.write(generator.generate(sample_documents), tmp_path / INDEX_FILENAME, formatted=False)
        data = json.loads((tmp_path / "search-index.min.json").read_text())
        assert set(data) == {"version", "generatedAt", "stats", "wordIndex"}
        assert set(data["stats"]) == {"totalDocuments", "totalWords"}

    def test_unformatted_skips_pretty_copy(self, generator, sample_documents, tmp_path):
        generator.write(generator.generate(sample_documents), tmp_path / INDEX_FILENAME, formatted=False)
        assert sorted(p.name for p in tmp_path.iterdir()) == ["search-index.min.json"]

    def test_rewrite_leaves_no_temp_files(self, generator, sample_documents, tmp_path):
        snapshot = generator.generate(sample_documents)
        generator.write(snapshot, tmp_path / INDEX_FILENAME)
        generator.write(snapshot, tmp_path / INDEX_FILENAME)
        assert sorted(p.name for p in tmp_path.iterdir()) == ["search-index.json", "search-index.min.json"]


class TestGenerateTo:
    def test_from_directory(self, generator, corpus_dir, tmp_path):
        out = tmp_path / "static"
        report = generator.generate_to(DirectoryDocumentStore(corpus_dir).iter_documents(), out)

        assert report.documents_indexed == 4
        assert report.documents_skipped == 0
        assert report.token_count > 0
        assert len(report.files) == 4
        assert (out / "search-index.min.json").exists()
        assert (out / "document-archive.min.json").exists()
        archive = DocumentArchive.model_validate_json((out / "document-archive.min.json").read_text())
        assert set(archive.documents) == {"2020-01-01", "2020-01-02", "2020-01-03", "2020-01-04"}
        assert (out / ARCHIVE_FILENAME).exists()

    def test_reports_skipped(self, generator, sample_documents, tmp_path):
        report = generator.generate_to([*sample_documents, {"date": "bad"}], tmp_path, formatted=False)
        assert report.documents_skipped == 1
        assert generator.skipped == 1
