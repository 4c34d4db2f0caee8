"""
Database layer for AlgoVault.

Raw SQL with ``?`` placeholders over either SQLite or PostgreSQL (see
dialect.py). The schema is created and migrated on a background thread at
startup; until that finishes, the readiness gate answers every request
except /health with 503.
"""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Callable, Sequence
from typing import Any

from flask import current_app, jsonify, request

from dialect import open_backend, translate_placeholders

logger = logging.getLogger(__name__)

NOT_READY_MESSAGE = "Database initializing, please wait..."


class QueryError(RuntimeError):
    """A statement failed. The chained driver error is for logs only."""


class IntegrityViolation(QueryError):
    """A constraint (FK, UNIQUE, NOT NULL) rejected the write."""


class NotFoundError(LookupError):
    """No row matched the given identifier."""

    def __init__(self, entity: str, key: str = ""):
        super().__init__(f"{entity} not found")
        self.entity = entity
        self.key = key


class DatabaseNotReady(RuntimeError):
    """Schema initialisation has not finished yet."""


class Database:
    """Query facade shared by every store.

    Each call runs a single statement on its own; there are no
    multi-statement transactions anywhere.
    """

    def __init__(self, backend):
        self._backend = backend
        self.is_postgres: bool = backend.is_postgres

    def _run(self, sql: str, params: Sequence[Any], mode: str) -> Any:
        query = translate_placeholders(sql, self.is_postgres)
        args = tuple(params)
        try:
            with self._backend.connection() as conn:
                # psycopg wants None, not (), when there is nothing to bind
                cur = conn.execute(query, args or None) if self.is_postgres else conn.execute(query, args)
                if mode == "one":
                    row = cur.fetchone()
                    return dict(row) if row is not None else None
                if mode == "all":
                    return [dict(r) for r in cur.fetchall()]
                return cur.rowcount
        except self._backend.integrity_errors as e:
            logger.warning("Constraint violation: %s", e)
            raise IntegrityViolation("constraint violation") from e
        except self._backend.driver_errors as e:
            logger.error("Query failed: %s [%s]", e, sql.strip().splitlines()[0])
            raise QueryError("database error") from e

    def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        """Run a write statement and return the affected row count."""
        return self._run(sql, params, "write")

    def fetchone(self, sql: str, params: Sequence[Any] = ()) -> dict[str, Any] | None:
        return self._run(sql, params, "one")

    def fetchall(self, sql: str, params: Sequence[Any] = ()) -> list[dict[str, Any]]:
        return self._run(sql, params, "all")

    def close(self) -> None:
        self._backend.close()


def connect(config: dict[str, Any]) -> Database:
    """Open the configured engine (fatal on failure) and wrap it."""
    backend = open_backend(
        config.get("DATABASE_URL", ""),
        config.get("DATABASE_PATH", "algovault.db"),
        busy_timeout_ms=int(config.get("SQLITE_BUSY_TIMEOUT_MS", 5000)),
        pool_max=int(config.get("PG_POOL_MAX", 10)),
        pool_min=int(config.get("PG_POOL_MIN", 5)),
    )
    return Database(backend)


def bootstrap(config: dict[str, Any]) -> Database:
    """Connect, create + migrate the schema, then seed.

    Connection and schema errors propagate; seeding never raises.
    """
    from schema import init_schema
    from seed import run_seeders

    db = connect(config)
    try:
        init_schema(db)
    except Exception:
        db.close()
        raise
    run_seeders(db)
    return db


class ReadinessGate:
    """One-shot signal plus the guarded database handle.

    Readers see either "not ready" or a fully initialised Database.
    """

    def __init__(self) -> None:
        self._ready = threading.Event()
        self._lock = threading.Lock()
        self._db: Database | None = None
        self.error: BaseException | None = None

    @property
    def is_ready(self) -> bool:
        return self._ready.is_set()

    def publish(self, db: Database) -> None:
        with self._lock:
            self._db = db
        self._ready.set()

    def run(self, init: Callable[[], Database]) -> Database:
        """Initialise inline; exceptions propagate to the caller."""
        db = init()
        self.publish(db)
        logger.info("Database ready")
        return db

    def start(self, init: Callable[[], Database],
              on_failure: Callable[[BaseException], None]) -> threading.Thread:
        """Initialise on a daemon thread."""

        def _target() -> None:
            try:
                self.run(init)
            except BaseException as e:
                self.error = e
                on_failure(e)

        thread = threading.Thread(target=_target, name="db-init", daemon=True)
        thread.start()
        return thread

    def wait(self, timeout: float | None = None) -> bool:
        return self._ready.wait(timeout)

    def get(self) -> Database:
        with self._lock:
            db = self._db
        # close() drops the handle before clearing the event
        if db is None or not self._ready.is_set():
            raise DatabaseNotReady(NOT_READY_MESSAGE)
        return db

    def close(self) -> None:
        with self._lock:
            db, self._db = self._db, None
        self._ready.clear()
        if db is not None:
            db.close()


def _exit_on_failure(exc: BaseException) -> None:
    logger.critical("Failed to initialize database: %s", exc, exc_info=exc)
    logging.shutdown()
    os._exit(1)


def get_db() -> Database:
    """Return the initialised Database for the current app."""
    return current_app.extensions["db_gate"].get()


def init_app(app, on_failure: Callable[[BaseException], None] | None = None) -> ReadinessGate:
    """Attach the readiness gate and start schema initialisation.

    With DB_INIT_SYNC the work happens inline and errors propagate;
    otherwise it runs in the background and a failure ends the process.
    """
    gate = ReadinessGate()
    app.extensions["db_gate"] = gate

    @app.before_request
    def _require_ready():
        if request.endpoint == "health" or gate.is_ready:
            return None
        return jsonify({"error": NOT_READY_MESSAGE}), 503

    if app.config.get("DB_INIT_SKIP"):
        return gate

    config = dict(app.config)
    if app.config.get("DB_INIT_SYNC"):
        gate.run(lambda: bootstrap(config))
    else:
        gate.start(lambda: bootstrap(config), on_failure or _exit_on_failure)
    return gate
