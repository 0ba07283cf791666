"""Tests for the key/value stores behind the progress service."""

import pytest

from speak_practice.config import Settings
from speak_practice.services.progress_service import ProgressService
from speak_practice.services.storage import (
    JsonFileStore,
    KeyValueStore,
    MemoryStore,
    StorageError,
    create_store,
)


@pytest.fixture(params=["memory", "file"])
def any_store(request, tmp_path):
    if request.param == "memory":
        return MemoryStore()
    return JsonFileStore(str(tmp_path / "data"))


def test_get_missing_key(any_store):
    assert any_store.get("english-practice-sessions") is None


def test_set_get_remove(any_store):
    any_store.set("english-practice-sessions", "[]")
    assert any_store.get("english-practice-sessions") == "[]"
    assert any_store.keys() == ["english-practice-sessions"]

    any_store.remove("english-practice-sessions")
    assert any_store.get("english-practice-sessions") is None
    any_store.remove("english-practice-sessions")


def test_file_store_writes_one_file_per_key(tmp_path):
    store = JsonFileStore(str(tmp_path))
    store.set("english-practice-achievements", '[{"id": "first_session"}]')

    path = tmp_path / "english-practice-achievements.json"
    assert path.read_text(encoding="utf-8") == '[{"id": "first_session"}]'
    assert not list(tmp_path.glob("*.tmp"))


def test_file_store_persists_across_instances(tmp_path):
    JsonFileStore(str(tmp_path)).set("key", "value")
    assert JsonFileStore(str(tmp_path)).get("key") == "value"


@pytest.mark.parametrize("key", ["../escape", "a/b", "", "spaces here"])
def test_file_store_rejects_unsafe_keys(tmp_path, key):
    with pytest.raises(ValueError):
        JsonFileStore(str(tmp_path)).get(key)


def test_file_store_write_failure_raises_storage_error(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("file in the way")
    store = JsonFileStore(str(blocker))
    with pytest.raises(StorageError):
        store.set("key", "value")


def test_file_store_unreadable_value_reads_as_missing(tmp_path):
    (tmp_path / "english-practice-sessions.json").write_bytes(b"\xff\xfe[garbage")
    (tmp_path / "english-practice-achievements.json").mkdir()
    store = JsonFileStore(str(tmp_path))

    assert store.get("english-practice-sessions") is None
    assert store.get("english-practice-achievements") is None

    progress = ProgressService(store)
    assert progress.get_all_sessions() == []
    assert progress.get_achievements() == []


def test_incomplete_store_cannot_be_created():
    class ReadOnlyStore(KeyValueStore):
        def get(self, key):
            return None

    with pytest.raises(TypeError):
        ReadOnlyStore()


def test_create_store(tmp_path):
    assert isinstance(create_store(Settings(storage_backend="memory")), MemoryStore)

    store = create_store(Settings(storage_backend="file", data_dir=str(tmp_path)))
    assert isinstance(store, JsonFileStore)

    with pytest.raises(ValueError):
        create_store(Settings(storage_backend="redis"))
