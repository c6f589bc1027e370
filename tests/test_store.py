import sqlite3

import pytest

from emigration.config import Settings
from emigration.errors import StoreError
from emigration.store import MemoryStore, SqliteStore, open_store


def test_create_then_list_returns_id_and_body(store):
    doc_id = store.create("emigrants", {"year": 2019, "single": 5})
    docs = store.list("emigrants")
    assert docs == [{"id": doc_id, "year": 2019, "single": 5}]


def test_collections_are_isolated(store):
    store.create("emigrants", {"year": 2019})
    assert store.list("emigrantsBySex") == []


def test_ids_are_unique(store):
    ids = {store.create("emigrants", {"year": 2000 + i}) for i in range(5)}
    assert len(ids) == 5


def test_update_overwrites_whole_body(store):
    doc_id = store.create("emigrants", {"year": 2019, "single": 5, "married": 3})
    store.update("emigrants", doc_id, {"year": 2019, "single": 7})
    assert store.list("emigrants") == [{"id": doc_id, "year": 2019, "single": 7}]


def test_update_ignores_id_in_body(store):
    doc_id = store.create("emigrants", {"year": 2019})
    store.update("emigrants", doc_id, {"id": "other", "year": 2020})
    assert store.list("emigrants") == [{"id": doc_id, "year": 2020}]


def test_update_missing_is_not_found(store):
    with pytest.raises(StoreError) as excinfo:
        store.update("emigrants", "nope", {"year": 2019})
    assert excinfo.value.code == "not-found"
    assert excinfo.value.status_code == 404


def test_delete_missing_is_silent(store):
    doc_id = store.create("emigrants", {"year": 2019})
    store.delete("emigrants", "nope")
    store.delete("emigrants", doc_id)
    store.delete("emigrants", doc_id)
    assert store.list("emigrants") == []


def test_memory_store_returns_copies(memory_store):
    memory_store.create("emigrants", {"year": 2019, "single": 1})
    memory_store.list("emigrants")[0]["single"] = 99
    assert memory_store.list("emigrants")[0]["single"] == 1


def test_sqlite_persists_across_instances(tmp_path):
    path = tmp_path / "db" / "store.sqlite"
    doc_id = SqliteStore(path).create("emigrants", {"year": 2019, "single": 4})
    assert SqliteStore(path).list("emigrants") == [{"id": doc_id, "year": 2019, "single": 4}]


def test_sqlite_lists_in_insertion_order(sqlite_store):
    ids = [sqlite_store.create("emigrants", {"year": y}) for y in (2021, 2019, 2020)]
    assert [d["id"] for d in sqlite_store.list("emigrants")] == ids


def test_sqlite_rejects_unserializable_body(sqlite_store):
    with pytest.raises(StoreError) as excinfo:
        sqlite_store.create("emigrants", {"year": object()})
    assert excinfo.value.code == "invalid-argument"


def test_sqlite_errors_are_wrapped(sqlite_store):
    with sqlite3.connect(str(sqlite_store.db_path)) as conn:
        conn.execute("DROP TABLE documents")
    with pytest.raises(StoreError) as excinfo:
        sqlite_store.list("emigrants")
    assert excinfo.value.code == "unavailable"


def test_open_store_by_setting(tmp_path):
    assert isinstance(open_store(Settings(store="memory")), MemoryStore)
    sqlite = open_store(Settings(store="sqlite", db_path=tmp_path / "s.sqlite"))
    assert isinstance(sqlite, SqliteStore)
    assert sqlite.db_path == tmp_path / "s.sqlite"
