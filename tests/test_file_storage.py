from __future__ import annotations

import pytest

from adapters.file_storage import JsonFileStore
from core.errors import CacheCorruptionError


def test_write_read_and_enumerate(tmp_path) -> None:
    store = JsonFileStore(str(tmp_path / "docs"))
    store.write("docs_index", {"chunks": [], "last_updated": "2024-01-01T00:00:00+00:00"})

    assert store.exists("docs_index")
    assert store.read("docs_index")["chunks"] == []
    assert list(store.keys()) == ["docs_index"]
    info = store.stat("docs_index")
    assert info is not None
    assert info.size_bytes > 0


def test_missing_directory_has_no_keys(tmp_path) -> None:
    store = JsonFileStore(str(tmp_path / "nope"))
    assert list(store.keys()) == []
    assert store.stat("user_a") is None
    assert store.delete("user_a") is False


def test_non_object_documents_are_corrupt(tmp_path) -> None:
    store = JsonFileStore(str(tmp_path))
    (tmp_path / "user_list.json").write_text("[1, 2]", encoding="utf-8")

    with pytest.raises(CacheCorruptionError):
        store.read("user_list")


def test_unsafe_keys_are_refused(tmp_path) -> None:
    store = JsonFileStore(str(tmp_path))
    with pytest.raises(ValueError):
        store.write("../escape", {})
    assert store.exists("../escape") is False


def test_undecodable_bytes_are_corrupt(tmp_path) -> None:
    store = JsonFileStore(str(tmp_path))
    (tmp_path / "user_bad.json").write_bytes(b'{"posts": "\xff\xfe"}')

    with pytest.raises(CacheCorruptionError):
        store.read("user_bad")
