"""Dashboard page checks using Streamlit's script test harness."""

from pathlib import Path

import pytest
import streamlit as st
from streamlit.testing.v1 import AppTest

from emigration.datasets import CIVIL_STATUS
from emigration.service import DatasetService
from emigration.store import SqliteStore

APP_PATH = str(Path(__file__).resolve().parents[1] / "app.py")


@pytest.fixture()
def db_path(tmp_path, monkeypatch):
    path = tmp_path / "app.sqlite"
    monkeypatch.setenv("EMIGRATION_STORE", "sqlite")
    monkeypatch.setenv("EMIGRATION_DB_PATH", str(path))
    st.cache_resource.clear()
    yield path
    st.cache_resource.clear()


def _run(at: AppTest) -> AppTest:
    at.run(timeout=60)
    assert not at.exception
    return at


def test_records_table_shows_every_category(db_path):
    DatasetService(SqliteStore(db_path), CIVIL_STATUS).add({"year": "2019", "single": "1234", "married": "56"})
    at = _run(AppTest.from_file(APP_PATH))
    texts = [m.value for m in at.markdown]
    for c in CIVIL_STATUS.categories:
        assert f"**{c.label}**" in texts
    assert "1,234" in texts
    assert "56" in texts


def test_success_notice_is_a_toast_shown_once(db_path):
    at = AppTest.from_file(APP_PATH)
    at.session_state["_notice"] = {"text": "Record added successfully!", "kind": "success"}
    _run(at)
    assert [t.value for t in at.toast] == ["Record added successfully!"]
    assert not at.error

    _run(at)
    assert len(at.toast) == 0


def test_error_notice_is_shown_inline(db_path):
    at = AppTest.from_file(APP_PATH)
    at.session_state["_notice"] = {"text": "Error adding record: Year is required", "kind": "error"}
    _run(at)
    assert [e.value for e in at.error] == ["Error adding record: Year is required"]
    assert len(at.toast) == 0
