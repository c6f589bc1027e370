from pathlib import Path

from emigration.config import DEFAULT_CORS_ORIGINS, DEFAULT_DB_PATH, Settings, load_settings


def test_defaults_from_empty_env():
    s = load_settings({})
    assert s == Settings()
    assert s.store == "sqlite"
    assert s.db_path == DEFAULT_DB_PATH
    assert s.unique_years is False
    assert s.cors_origins == DEFAULT_CORS_ORIGINS


def test_default_db_path_follows_working_directory(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    s = load_settings({})
    assert not s.db_path.is_absolute()
    assert s.db_path.resolve() == tmp_path.resolve() / "emigration.sqlite"


def test_env_overrides(tmp_path):
    s = load_settings(
        {
            "EMIGRATION_STORE": "Memory",
            "EMIGRATION_DB_PATH": str(tmp_path / "x.sqlite"),
            "EMIGRATION_UNIQUE_YEARS": "yes",
            "EMIGRATION_LOG_LEVEL": "debug",
            "EMIGRATION_CORS_ORIGINS": "http://a.test, http://b.test",
        }
    )
    assert s.store == "memory"
    assert s.db_path == Path(tmp_path / "x.sqlite")
    assert s.unique_years is True
    assert s.log_level == "DEBUG"
    assert s.cors_origins == ["http://a.test", "http://b.test"]


def test_bad_values_fall_back():
    s = load_settings({"EMIGRATION_STORE": "firestore", "EMIGRATION_UNIQUE_YEARS": "maybe"})
    assert s.store == "sqlite"
    assert s.unique_years is False
