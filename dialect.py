"""Dialect adapter — picks the relational engine and owns its connections.

When DATABASE_URL is set (postgresql://...), connections come from a
bounded psycopg pool. Otherwise a single SQLite file is used through
exactly one connection, guarded by a lock, so every statement is
serialized.

Everything above this module sees only the ``is_postgres`` flag; query
text is always written with ``?`` markers and passed through
``translate_placeholders`` once, right before execution.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

logger = logging.getLogger(__name__)

PLACEHOLDER = "?"


class DatabaseUnavailable(RuntimeError):
    """The engine could not be opened or did not answer the ping."""


def is_postgres_url(url: str) -> bool:
    """Check if a database URL is a PostgreSQL URL."""
    return url.startswith("postgresql://") or url.startswith("postgres://")


def translate_placeholders(sql: str, is_postgres: bool) -> str:
    """Rewrite ``?`` markers into ``$1, $2, ...`` for PostgreSQL.

    SQLite text is returned as-is. Not safe to apply twice to the same text.
    """
    if not is_postgres:
        return sql
    parts = sql.split(PLACEHOLDER)
    out = [parts[0]]
    for n, part in enumerate(parts[1:], start=1):
        out.append(f"${n}")
        out.append(part)
    return "".join(out)


class SQLiteBackend:
    """One shared sqlite3 connection; the lock is the whole pool."""

    is_postgres = False
    driver_errors: tuple[type[Exception], ...] = (sqlite3.Error,)
    integrity_errors: tuple[type[Exception], ...] = (sqlite3.IntegrityError,)

    def __init__(self, path: str, busy_timeout_ms: int = 5000):
        self.path = path
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(
            path,
            timeout=busy_timeout_ms / 1000,
            check_same_thread=False,
            isolation_level=None,
        )
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute(f"PRAGMA busy_timeout={int(busy_timeout_ms)}")
        self._conn.execute("PRAGMA foreign_keys=ON")

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            yield self._conn

    def close(self) -> None:
        with self._lock:
            self._conn.close()


class PostgresBackend:
    """psycopg connection pool in autocommit mode with raw ($n) cursors."""

    is_postgres = True

    def __init__(self, url: str, max_size: int = 10, min_size: int = 5, timeout: float = 30.0):
        import psycopg
        from psycopg.rows import dict_row
        from psycopg_pool import ConnectionPool

        self.driver_errors = (psycopg.Error,)
        self.integrity_errors = (psycopg.IntegrityError,)
        self._pool = ConnectionPool(
            url,
            min_size=min(min_size, max_size),
            max_size=max_size,
            timeout=timeout,
            kwargs={
                "autocommit": True,
                "row_factory": dict_row,
                "cursor_factory": psycopg.RawCursor,
            },
            open=True,
        )

    @contextmanager
    def connection(self) -> Iterator[Any]:
        with self._pool.connection() as conn:
            yield conn

    def close(self) -> None:
        self._pool.close()


def open_backend(database_url: str, sqlite_path: str, *,
                 busy_timeout_ms: int = 5000,
                 pool_max: int = 10,
                 pool_min: int = 5) -> SQLiteBackend | PostgresBackend:
    """Open the engine selected by ``database_url`` and ping it.

    Raises DatabaseUnavailable on any failure; callers treat that as fatal.
    """
    try:
        if database_url:
            if not is_postgres_url(database_url):
                raise DatabaseUnavailable(
                    "DATABASE_URL must start with postgresql:// or postgres://"
                )
            logger.info("Using PostgreSQL (DATABASE_URL is set), pool max=%d", pool_max)
            backend: SQLiteBackend | PostgresBackend = PostgresBackend(
                database_url, max_size=pool_max, min_size=pool_min,
            )
        else:
            logger.info("Using SQLite at %s", sqlite_path)
            backend = SQLiteBackend(sqlite_path, busy_timeout_ms=busy_timeout_ms)
    except DatabaseUnavailable:
        raise
    except Exception as e:
        raise DatabaseUnavailable(f"failed to open database: {e}") from e

    try:
        with backend.connection() as conn:
            conn.execute("SELECT 1").fetchone()
    except Exception as e:
        backend.close()
        raise DatabaseUnavailable(f"failed to ping database: {e}") from e
    return backend
