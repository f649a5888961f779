"""Tests for core.storage: payload stores, metadata stores, capability detection."""

import json

import pytest

from panelsearch.core.storage import (
    CompressionType,
    JsonFileKeyValueStore,
    LocalStorage,
    MemoryKeyValueStore,
    MemoryStorage,
    NullStorage,
    StorageError,
    StorageKeyError,
    StoragePermissionError,
    compression_for,
    decode_payload,
    detect_storage,
    encode_payload,
    is_writable_directory,
    savings_percent,
)

# ── Compression utilities ───────────────────────────────────────────


class TestCompression:
    def test_gzip_roundtrip(self):
        data = b"hello world" * 100
        encoded = encode_payload(data, CompressionType.GZIP)
        assert encoded != data
        assert decode_payload(encoded) == data

    def test_gzip_is_deterministic(self):
        data = b'{"wordIndex": {}}' * 50
        assert encode_payload(data, CompressionType.GZIP) == encode_payload(data, CompressionType.GZIP)

    def test_none_passthrough(self):
        data = b"untouched"
        assert encode_payload(data, CompressionType.NONE) is data
        assert decode_payload(data) is data

    def test_suffix(self):
        assert CompressionType.GZIP.suffix == ".gz"
        assert CompressionType.NONE.suffix == ""

    def test_savings_percent(self):
        assert savings_percent(1000, 300) == pytest.approx(70.0)
        assert savings_percent(0, 0) == 0.0

    def test_content_type_routing(self):
        assert compression_for("application/json") == CompressionType.GZIP
        assert compression_for("image/gif") == CompressionType.NONE
        assert compression_for("application/gzip") == CompressionType.NONE


# ── LocalStorage ────────────────────────────────────────────────────


class TestLocalStorage:
    @pytest.fixture
    def storage(self, tmp_path):
        return LocalStorage(base_path=str(tmp_path / "store"))

    @pytest.mark.asyncio
    async def test_save_and_load(self, storage):
        data = b"test data content"
        stored = await storage.save("file.bin", data, content_type="application/octet-stream", compress=False)
        assert stored.key == "file.bin"
        assert stored.compression is None
        assert await storage.load("file.bin") == data

    @pytest.mark.asyncio
    async def test_json_is_compressed_on_disk(self, storage):
        data = json.dumps({"wordIndex": {"love": ["2020-01-01"] * 200}}).encode()
        stored = await storage.save("search-index.json", data, content_type="application/json")
        assert stored.compression == "gzip"
        assert stored.size == len(data)
        assert stored.stored_size < len(data)
        assert (storage.base_path / "search-index.json.gz").exists()
        assert not (storage.base_path / "search-index.json").exists()
        assert await storage.load("search-index.json") == data

    @pytest.mark.asyncio
    async def test_save_replaces_stale_variant(self, storage):
        await storage.save("a.json", b"plain", content_type="application/json", compress=False)
        await storage.save("a.json", b"zipped", content_type="application/json")
        assert not (storage.base_path / "a.json").exists()
        assert await storage.load("a.json") == b"zipped"

    @pytest.mark.asyncio
    async def test_no_temp_file_left_behind(self, storage):
        await storage.save("a.json", b"{}", content_type="application/json")
        assert [p.name for p in storage.base_path.iterdir()] == ["a.json.gz"]

    @pytest.mark.asyncio
    async def test_load_missing_raises(self, storage):
        with pytest.raises(StorageKeyError):
            await storage.load("nope")

    @pytest.mark.asyncio
    async def test_truncated_gzip_raises_storage_error(self, storage):
        data = json.dumps({"wordIndex": {"love": ["2020-01-01"] * 200}}).encode()
        await storage.save("search-index.json", data, content_type="application/json")
        path = storage.base_path / "search-index.json.gz"
        path.write_bytes(path.read_bytes()[:20])

        with pytest.raises(StorageError, match="Corrupt payload"):
            await storage.load("search-index.json")

    @pytest.mark.asyncio
    async def test_garbled_gzip_raises_storage_error(self, storage):
        await storage.save("a.json", b"{}", content_type="application/json")
        (storage.base_path / "a.json.gz").write_bytes(b"\x1f\x8b\x08\x00" + b"not a deflate stream" * 4)

        with pytest.raises(StorageError):
            await storage.load("a.json")

    @pytest.mark.asyncio
    async def test_missing_key_is_a_key_error(self, storage):
        with pytest.raises(KeyError):
            await storage.load("nope")

    @pytest.mark.asyncio
    async def test_exists_and_delete(self, storage):
        await storage.save("x.json", b"{}", content_type="application/json")
        assert await storage.exists("x.json")
        assert await storage.delete("x.json") is True
        assert not await storage.exists("x.json")
        assert await storage.delete("x.json") is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("key", ["../escape", "/etc/passwd", "~/x", "a\\b", "  "])
    async def test_unsafe_keys_rejected(self, storage, key):
        with pytest.raises(StoragePermissionError):
            await storage.save(key, b"x")


# ── In-memory stores ────────────────────────────────────────────────


class TestMemoryStorage:
    @pytest.mark.asyncio
    async def test_roundtrip(self):
        storage = MemoryStorage()
        await storage.save("k", b"v")
        assert await storage.load("k") == b"v"
        assert await storage.exists("k")
        assert await storage.delete("k")
        assert not await storage.exists("k")

    @pytest.mark.asyncio
    async def test_not_persistent(self):
        assert MemoryStorage().persistent is False
        assert NullStorage().persistent is False

    @pytest.mark.asyncio
    async def test_null_storage_keeps_nothing(self):
        storage = NullStorage()
        await storage.save("k", b"v")
        with pytest.raises(StorageKeyError):
            await storage.load("k")
        assert await storage.delete("k") is False


class TestMemoryKeyValueStore:
    def test_get_set_delete(self):
        store = MemoryKeyValueStore()
        assert store.get("meta") is None
        store.set("meta", {"version": "1.0"})
        assert store.get("meta") == {"version": "1.0"}
        assert store.delete("meta") is True
        assert store.delete("meta") is False

    def test_values_are_copied(self):
        store = MemoryKeyValueStore()
        record = {"stats": {"totalDocuments": 1}}
        store.set("meta", record)
        record["stats"]["totalDocuments"] = 99
        assert store.get("meta")["stats"]["totalDocuments"] == 1


class TestJsonFileKeyValueStore:
    def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "cache" / "metadata.json"
        JsonFileKeyValueStore(path).set("search-index-meta", {"version": "1.0"})
        assert JsonFileKeyValueStore(path).get("search-index-meta") == {"version": "1.0"}

    def test_delete(self, tmp_path):
        store = JsonFileKeyValueStore(tmp_path / "metadata.json")
        store.set("a", 1)
        store.set("b", 2)
        assert store.delete("a") is True
        assert store.delete("a") is False
        assert store.get("b") == 2

    def test_corrupt_file_treated_as_empty(self, tmp_path):
        path = tmp_path / "metadata.json"
        path.write_text("{not json")
        store = JsonFileKeyValueStore(path)
        assert store.get("a") is None
        store.set("a", 1)
        assert json.loads(path.read_text()) == {"a": 1}

    def test_undecodable_file_treated_as_empty(self, tmp_path):
        path = tmp_path / "metadata.json"
        path.write_bytes(b"\xff\xfe\x00garbage")
        assert JsonFileKeyValueStore(path).get("search-index-meta") is None


# ── Capability detection ────────────────────────────────────────────


class TestDetectStorage:
    def test_writable_directory_uses_disk(self, tmp_path):
        metadata_store, payload_store = detect_storage(tmp_path / "cache")
        assert isinstance(metadata_store, JsonFileKeyValueStore)
        assert isinstance(payload_store, LocalStorage)
        assert payload_store.persistent is True

    def test_unwritable_directory_falls_back_to_memory(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        metadata_store, payload_store = detect_storage(blocker / "cache")
        assert isinstance(metadata_store, MemoryKeyValueStore)
        assert isinstance(payload_store, MemoryStorage)

    def test_no_directory_uses_memory(self):
        metadata_store, payload_store = detect_storage(None)
        assert isinstance(metadata_store, MemoryKeyValueStore)
        assert isinstance(payload_store, MemoryStorage)

    def test_is_writable_directory(self, tmp_path):
        assert is_writable_directory(tmp_path / "new" / "dir")
        assert (tmp_path / "new" / "dir").is_dir()
        assert list((tmp_path / "new" / "dir").iterdir()) == []
