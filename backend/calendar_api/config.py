# backend/calendar_api/config.py
"""Runtime settings read from the environment (and .env, see __init__)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

DEFAULT_DATA_DIR = "local-data"
DEFAULT_PORT = 3101
DEFAULT_FRONTEND_ORIGIN = "http://localhost:5173"
DEFAULT_TIMEZONE = "UTC"


def _clean(s: str | None) -> str | None:
    return s.strip().rstrip("/") if s and s.strip() else None


def _flag(value: str | None) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes", "on"}


def resolve_data_dir(environ: Mapping[str, str] = os.environ) -> Path:
    """APP_USER_DATA_DIR when set (the desktop shell passes it), else ./local-data."""
    base_dir = environ.get("APP_USER_DATA_DIR")
    if base_dir and base_dir.strip():
        return Path(base_dir)
    return Path.cwd() / DEFAULT_DATA_DIR


def database_path(data_dir: Path) -> Path:
    return data_dir / "db" / "schedule.db"


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    database_url: Optional[str] = None
    host: str = "127.0.0.1"
    port: int = DEFAULT_PORT
    frontend_origin: str = DEFAULT_FRONTEND_ORIGIN
    extra_cors_origins: tuple[str, ...] = field(default_factory=tuple)
    default_timezone: str = DEFAULT_TIMEZONE
    log_level: str = "INFO"
    log_file: Optional[Path] = None
    sql_echo: bool = False

    @classmethod
    def from_env(cls, environ: Mapping[str, str] = os.environ) -> "Settings":
        raw_extra = environ.get("EXTRA_CORS_ORIGINS", "")
        log_file = environ.get("LOG_FILE")
        return cls(
            data_dir=resolve_data_dir(environ),
            database_url=environ.get("DATABASE_URL") or None,
            host=environ.get("API_HOST", "127.0.0.1"),
            port=int(environ.get("API_PORT", DEFAULT_PORT)),
            frontend_origin=_clean(environ.get("FRONTEND_ORIGIN")) or DEFAULT_FRONTEND_ORIGIN,
            extra_cors_origins=tuple(x for x in (_clean(p) for p in raw_extra.split(",")) if x),
            default_timezone=(environ.get("DEFAULT_TIMEZONE") or DEFAULT_TIMEZONE).strip(),
            log_level=environ.get("LOG_LEVEL", "INFO").upper(),
            log_file=Path(log_file) if log_file else None,
            sql_echo=_flag(environ.get("SQL_ECHO")),
        )

    @property
    def db_url(self) -> str:
        if self.database_url:
            return self.database_url
        return f"sqlite:///{database_path(self.data_dir)}"

    @property
    def cors_origins(self) -> list[str]:
        if "*" in self.extra_cors_origins:
            return ["*"]
        return sorted({self.frontend_origin, *self.extra_cors_origins})
