# backend/calendar_api/db.py
"""Database handle and base model setup."""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from loguru import logger
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""
    pass


def _enable_transactional_ddl(engine: Engine) -> None:
    """
    Let SQLAlchemy own transaction boundaries on SQLite.

    pysqlite only opens a transaction implicitly before DML, so DDL in a
    migration would otherwise autocommit and survive a rollback.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


class Database:
    """
    Owns the engine for one SQLite file.

    Nothing is touched on construction; call open() (or use it as a context
    manager) before asking for sessions, and close() to release the
    connection.
    """

    def __init__(self, url: str, *, echo: bool = False):
        self.url = url
        self.echo = echo
        self._engine: Optional[Engine] = None
        self._sessionmaker: Optional[sessionmaker[Session]] = None

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError("Database is not open")
        return self._engine

    def open(self) -> "Database":
        if self._engine is not None:
            return self

        url = make_url(self.url)
        if url.get_backend_name() != "sqlite":
            raise ValueError(f"Only SQLite databases are supported, got {url.drivername}")
        in_memory = not url.database or url.database == ":memory:"
        if in_memory:
            pool_args = {"poolclass": StaticPool}
        else:
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
            # One connection for the whole process; requests take turns on it.
            pool_args = {"pool_size": 1, "max_overflow": 0}

        engine = create_engine(
            url,
            echo=self.echo,
            connect_args={"check_same_thread": False},
            **pool_args,
        )
        _enable_transactional_ddl(engine)

        self._engine = engine
        self._sessionmaker = sessionmaker(
            bind=engine, autoflush=False, expire_on_commit=False
        )
        logger.info("Opened database {}", url.render_as_string(hide_password=True))
        return self

    def close(self) -> None:
        if self._engine is None:
            return
        self._engine.dispose()
        self._engine = None
        self._sessionmaker = None
        logger.info("Closed database")

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Yield a session and guarantee it is closed afterwards."""
        if self._sessionmaker is None:
            raise RuntimeError("Database is not open")
        db = self._sessionmaker()
        try:
            yield db
        finally:
            db.close()

    def __enter__(self) -> "Database":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
