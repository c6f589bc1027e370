"""Shared fixtures: stores, services and an API client wired to a throwaway store."""

import pytest

from emigration.config import Settings
from emigration.datasets import CIVIL_STATUS, EDUCATION, SEX
from emigration.service import DatasetService
from emigration.store import MemoryStore, SqliteStore

CIVIL_STATUS_CSV = (
    "year,single,married,widower,separated,divorced,notReported\n"
    "2019,100,50,0,0,0,0\n"
    "2020,80,,,,,\n"
)


@pytest.fixture()
def memory_store():
    return MemoryStore()


@pytest.fixture()
def sqlite_store(tmp_path):
    return SqliteStore(tmp_path / "test.sqlite")


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    if request.param == "memory":
        return MemoryStore()
    return SqliteStore(tmp_path / "param.sqlite")


@pytest.fixture()
def civil_service(memory_store):
    return DatasetService(memory_store, CIVIL_STATUS)


@pytest.fixture()
def sex_service(memory_store):
    return DatasetService(memory_store, SEX)


@pytest.fixture()
def education_service(memory_store):
    return DatasetService(memory_store, EDUCATION)


@pytest.fixture()
def strict_settings():
    return Settings(store="memory", unique_years=True)


@pytest.fixture()
def client(memory_store):
    from fastapi.testclient import TestClient

    from api.main import app, get_store

    app.dependency_overrides[get_store] = lambda: memory_store
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def civil_csv():
    return CIVIL_STATUS_CSV
