"""
Tests for the in-memory and JSON-file stores.
"""

import json

from profilefinder.storage import JsonFileStore, MemoryStore, load_store, save_store


class TestMemoryStore:
    """Dict-backed store."""

    def test_get_missing(self):
        assert MemoryStore().get("cache:nobody") is None

    def test_set_and_get(self):
        store = MemoryStore()
        store.set("cache:kelly|oneill|mount sinai", {"url": "https://www.linkedin.com/in/kelly-oneill"})
        assert store.get("cache:kelly|oneill|mount sinai")["url"].endswith("kelly-oneill")
        assert len(store) == 1

    def test_values_are_copied(self):
        """Mutating a returned value does not change the store."""
        store = MemoryStore()
        value = {"items": [1]}
        store.set("k", value)
        value["items"].append(2)
        got = store.get("k")
        got["items"].append(3)
        assert store.get("k") == {"items": [1]}

    def test_keys(self):
        store = MemoryStore({"a": 1, "b": 2})
        assert sorted(store.keys()) == ["a", "b"]

    def test_empty_store_is_falsy(self):
        assert not MemoryStore()


class TestJsonFiles:
    """load_store / save_store helpers."""

    def test_load_missing_file(self, tmp_path):
        assert load_store(tmp_path / "missing.json") == {}

    def test_load_empty_file(self, tmp_path):
        path = tmp_path / "empty.json"
        path.write_text("")
        assert load_store(path) == {}

    def test_load_corrupt_file(self, tmp_path):
        path = tmp_path / "corrupt.json"
        path.write_text("{broken")
        assert load_store(path) == {}

    def test_load_non_object(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text("[1, 2]")
        assert load_store(path) == {}

    def test_save_creates_parent_and_no_tmp(self, tmp_path):
        path = tmp_path / "nested" / "store.json"
        save_store(path, {"k": "Ñúñez"})
        assert json.loads(path.read_text(encoding="utf-8")) == {"k": "Ñúñez"}
        assert not (tmp_path / "nested" / "store.json.tmp").exists()


class TestJsonFileStore:
    """Whole-file persistence."""

    def test_persists_between_instances(self, tmp_path):
        path = tmp_path / "store.json"
        JsonFileStore(path).set("patterns:successes", [{"strategy": "name_org"}])
        reopened = JsonFileStore(path)
        assert reopened.get("patterns:successes") == [{"strategy": "name_org"}]
        assert list(reopened.keys()) == ["patterns:successes"]

    def test_starts_empty(self, tmp_path):
        store = JsonFileStore(tmp_path / "new.json")
        assert len(store) == 0
        assert not (tmp_path / "new.json").exists()
