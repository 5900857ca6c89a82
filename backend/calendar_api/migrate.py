"""Schema migration runner.

Applies the ``*.sql`` files in the migrations/ directory in filename order.
Each file runs once, inside a transaction, and is tracked in the
schema_migrations table.

Usage:
    python -m calendar_api.migrate               # Migrate the configured database
    python -m calendar_api.migrate sqlite:///x   # Migrate a specific database
"""

from __future__ import annotations

import sqlite3
from pathlib import Path

from loguru import logger
from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from .errors import MigrationError
from .timestamps import format_timestamp, utcnow

MIGRATIONS_DIR = Path(__file__).parent / "migrations"
MIGRATION_SUFFIX = ".sql"

_MIGRATIONS_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS schema_migrations (
    filename TEXT PRIMARY KEY,
    applied_at TEXT NOT NULL
)
"""


def discover_migrations(migrations_dir: Path = MIGRATIONS_DIR) -> list[Path]:
    """Find all migration scripts, sorted by filename."""
    files = [
        p for p in migrations_dir.iterdir()
        if p.is_file() and p.suffix == MIGRATION_SUFFIX
    ]
    return sorted(files, key=lambda p: p.name)


def split_statements(script: str) -> list[str]:
    """Split a SQL script into complete statements (triggers stay whole)."""
    statements: list[str] = []
    buffer = ""
    for line in script.splitlines(keepends=True):
        buffer += line
        if sqlite3.complete_statement(buffer):
            stmt = buffer.strip()
            if stmt.rstrip(";").strip():
                statements.append(stmt)
            buffer = ""
    if buffer.strip():
        # Trailing statement without a semicolon
        statements.append(buffer.strip())
    return statements


def _get_applied(conn: Connection) -> set[str]:
    rows = conn.execute(text("SELECT filename FROM schema_migrations"))
    return {row[0] for row in rows}


def run_migrations(engine: Engine, migrations_dir: Path = MIGRATIONS_DIR) -> list[str]:
    """
    Apply every pending migration. Returns the filenames applied, in order.

    A failing script is rolled back, left unrecorded, and raised as
    MigrationError; later scripts are not attempted.
    """
    with engine.begin() as conn:
        conn.exec_driver_sql(_MIGRATIONS_TABLE_SQL)
        applied = _get_applied(conn)

    done: list[str] = []
    for path in discover_migrations(migrations_dir):
        if path.name in applied:
            logger.debug("Migration already applied: {}", path.name)
            continue

        script = path.read_text(encoding="utf-8")
        try:
            with engine.begin() as conn:
                for statement in split_statements(script):
                    conn.exec_driver_sql(statement)
                conn.execute(
                    text(
                        "INSERT INTO schema_migrations (filename, applied_at) "
                        "VALUES (:filename, :applied_at)"
                    ),
                    {"filename": path.name, "applied_at": format_timestamp(utcnow())},
                )
        except SQLAlchemyError as exc:
            logger.exception("Migration failed: {}", path.name)
            raise MigrationError(path.name) from exc

        done.append(path.name)
        logger.info("Applied migration: {}", path.name)

    return done


if __name__ == "__main__":
    import sys

    from .config import Settings
    from .db import Database
    from .logging_setup import configure_logging

    settings = Settings.from_env()
    configure_logging(settings)

    url = sys.argv[1] if len(sys.argv) > 1 else settings.db_url
    try:
        with Database(url) as database:
            applied_now = run_migrations(database.engine)
    except MigrationError as e:
        logger.error(str(e))
        sys.exit(1)
    logger.info("Done. {} migration(s) applied.", len(applied_now))
