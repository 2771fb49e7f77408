import json

import pytest

from soilmonitor.domain.exceptions import RepositoryError
from soilmonitor.services.protocols import KeyValueStore
from soilmonitor.utils.persistent_store import FileLock, InMemoryStore, JsonFileStore


def test_stores_satisfy_the_protocol(tmp_path):
    assert isinstance(JsonFileStore(str(tmp_path)), KeyValueStore)
    assert isinstance(InMemoryStore(), KeyValueStore)


def test_values_survive_a_new_instance(tmp_path):
    store = JsonFileStore(str(tmp_path))
    store.set("selected_plant", "Basil")
    store.set("soil_history", [{"raw": 1}])

    reopened = JsonFileStore(str(tmp_path))
    assert reopened.get("selected_plant") == "Basil"
    assert reopened.get("soil_history") == [{"raw": 1}]
    assert reopened.get("missing", "fallback") == "fallback"


def test_write_is_atomic_and_leaves_no_temp_files(tmp_path):
    store = JsonFileStore(str(tmp_path))
    store.set("key", {"a": 1})

    assert sorted(p.name for p in tmp_path.iterdir()) == ["soilmonitor.json"]
    assert json.loads((tmp_path / "soilmonitor.json").read_text(encoding="utf-8")) == {"key": {"a": 1}}


def test_corrupt_file_degrades_to_empty(tmp_path):
    (tmp_path / "soilmonitor.json").write_text("{not json", encoding="utf-8")

    store = JsonFileStore(str(tmp_path))
    assert store.get("soil_history") is None


def test_non_object_document_degrades_to_empty(tmp_path):
    (tmp_path / "soilmonitor.json").write_text("[1, 2]", encoding="utf-8")

    assert JsonFileStore(str(tmp_path)).get("anything") is None


def test_returned_values_are_copies(tmp_path):
    store = JsonFileStore(str(tmp_path))
    store.set("soil_history", [1, 2])

    store.get("soil_history").append(3)
    assert store.get("soil_history") == [1, 2]


def test_delete(tmp_path):
    store = JsonFileStore(str(tmp_path))
    store.set("key", 1)
    store.delete("key")
    store.delete("never-set")

    assert JsonFileStore(str(tmp_path)).get("key") is None


def test_unwritable_location_raises_repository_error(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("", encoding="utf-8")
    store = JsonFileStore(str(blocker / "data"))

    with pytest.raises(RepositoryError):
        store.set("key", 1)


def test_file_lock_times_out_when_held(tmp_path):
    lock_path = str(tmp_path / "store.lock")
    with FileLock(lock_path):
        assert FileLock(lock_path, timeout=0.1, retry=0.02).acquire() is False
    assert FileLock(lock_path, timeout=0.1).acquire() is True


def test_in_memory_store_copies_on_the_way_in_and_out():
    initial = {"soil_history": [1]}
    store = InMemoryStore(initial)
    initial["soil_history"].append(2)

    assert store.get("soil_history") == [1]
