"""Tests for display counters over key/value and JSON file storage."""

import json
from datetime import datetime, timezone

import pytest

from src.popup.frequency_store import (
    JsonFileStorage,
    KeyValueFrequencyStore,
    count_key,
    from_epoch_ms,
    last_shown_key,
    to_epoch_ms,
)


NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class TestKeys:
    def test_key_format(self):
        assert last_shown_key("abc") == "popup_abc_last_shown"
        assert count_key("abc") == "popup_abc_count"

    def test_epoch_round_trip(self):
        assert from_epoch_ms(to_epoch_ms(NOW)) == NOW

    def test_naive_datetime_treated_as_utc(self):
        assert to_epoch_ms(datetime(1970, 1, 1, 0, 0, 1)) == 1000


class TestKeyValueFrequencyStore:
    def test_never_shown(self):
        state = KeyValueFrequencyStore({}).get("p1")
        assert state.display_count == 0
        assert state.last_shown_at is None

    def test_record_display_writes_string_values(self):
        backing: dict[str, str] = {}
        store = KeyValueFrequencyStore(backing)

        state = store.record_display("p1", NOW)

        assert state.display_count == 1
        assert backing == {
            "popup_p1_count": "1",
            "popup_p1_last_shown": str(to_epoch_ms(NOW)),
        }

    def test_count_only_increases(self):
        store = KeyValueFrequencyStore()
        counts = [store.record_display("p1", NOW).display_count for _ in range(3)]
        assert counts == [1, 2, 3]
        assert store.get("p1").last_shown_at == NOW

    def test_popups_are_independent(self):
        store = KeyValueFrequencyStore()
        store.record_display("p1", NOW)
        assert store.get("p2").display_count == 0

    def test_reads_values_written_elsewhere(self):
        backing = {"popup_p1_count": "2", "popup_p1_last_shown": "1000"}
        state = KeyValueFrequencyStore(backing).get("p1")
        assert state.display_count == 2
        assert state.last_shown_at == datetime(1970, 1, 1, 0, 0, 1, tzinfo=timezone.utc)

    def test_malformed_values_ignored(self):
        backing = {"popup_p1_count": "lots", "popup_p1_last_shown": ""}
        state = KeyValueFrequencyStore(backing).get("p1")
        assert state.display_count == 0
        assert state.last_shown_at is None


class TestJsonFileStorage:
    def test_missing_file_is_empty(self, tmp_path):
        storage = JsonFileStorage(tmp_path / "visitor.json")
        assert len(storage) == 0
        assert storage.get("anything") is None

    def test_write_and_read(self, tmp_path):
        path = tmp_path / "nested" / "visitor.json"
        storage = JsonFileStorage(path)
        storage["popup_p1_count"] = "1"

        assert storage["popup_p1_count"] == "1"
        assert json.loads(path.read_text(encoding="utf-8")) == {"popup_p1_count": "1"}

    def test_no_stale_cache(self, tmp_path):
        path = tmp_path / "visitor.json"
        storage = JsonFileStorage(path)
        storage["k"] = "1"

        # another page load writes the file
        path.write_text(json.dumps({"k": "2"}), encoding="utf-8")

        assert storage["k"] == "2"

    def test_delete(self, tmp_path):
        storage = JsonFileStorage(tmp_path / "visitor.json")
        storage["a"] = "1"
        storage["b"] = "2"
        del storage["a"]
        assert list(storage) == ["b"]

    def test_missing_key_raises(self, tmp_path):
        with pytest.raises(KeyError):
            JsonFileStorage(tmp_path / "visitor.json")["missing"]

    def test_not_an_object(self, tmp_path):
        path = tmp_path / "visitor.json"
        path.write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(ValueError):
            JsonFileStorage(path)["k"]

    def test_shared_across_store_instances(self, tmp_path):
        path = tmp_path / "visitor.json"
        KeyValueFrequencyStore(JsonFileStorage(path)).record_display("p1", NOW)
        KeyValueFrequencyStore(JsonFileStorage(path)).record_display("p1", NOW)

        state = KeyValueFrequencyStore(JsonFileStorage(path)).get("p1")
        assert state.display_count == 2
