from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Literal, Mapping, Optional

# Relative to the working directory the app or API is started from.
DEFAULT_DB_PATH = Path("emigration.sqlite")
DEFAULT_CORS_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]

StoreKind = Literal["sqlite", "memory"]


@dataclass(frozen=True)
class Settings:
    store: StoreKind = "sqlite"
    db_path: Path = DEFAULT_DB_PATH
    unique_years: bool = False
    log_level: str = "INFO"
    cors_origins: List[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))


def _as_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None or not value.strip():
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    env = os.environ if env is None else env
    store = (env.get("EMIGRATION_STORE") or "sqlite").strip().lower()
    if store not in ("sqlite", "memory"):
        store = "sqlite"
    origins = [o.strip() for o in (env.get("EMIGRATION_CORS_ORIGINS") or "").split(",") if o.strip()]
    return Settings(
        store=store,  # type: ignore[arg-type]
        db_path=Path(env.get("EMIGRATION_DB_PATH") or DEFAULT_DB_PATH),
        unique_years=_as_bool(env.get("EMIGRATION_UNIQUE_YEARS")),
        log_level=(env.get("EMIGRATION_LOG_LEVEL") or "INFO").upper(),
        cors_origins=origins or list(DEFAULT_CORS_ORIGINS),
    )


_logging_configured = False


def configure_logging(level: str = "INFO") -> None:
    global _logging_configured
    if _logging_configured:
        return
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    _logging_configured = True
