"""Tests for database.py — the query facade over both engines."""

import sqlite3
from contextlib import contextmanager

import pytest

from database import Database, IntegrityViolation, QueryError
from dialect import SQLiteBackend
from schema import column_exists


class RecordingConnection:
    def __init__(self, row=None):
        self.calls = []
        self.row = row

    def execute(self, sql, params=None):
        self.calls.append((sql, params))
        return self

    def fetchone(self):
        return self.row

    def fetchall(self):
        return [self.row] if self.row is not None else []

    rowcount = 1


class FakePostgresBackend:
    """Stands in for the pool; records what would reach the server."""

    is_postgres = True
    driver_errors = (sqlite3.Error,)
    integrity_errors = (sqlite3.IntegrityError,)

    def __init__(self, row=None):
        self.conn = RecordingConnection(row)

    @contextmanager
    def connection(self):
        yield self.conn

    def close(self):
        pass


class TestPostgresPath:
    def test_statement_translated_once(self):
        backend = FakePostgresBackend()
        db = Database(backend)
        db.execute("UPDATE patterns SET theory = ? WHERE id = ?", ("t", "p1"))
        assert backend.conn.calls == [("UPDATE patterns SET theory = $1 WHERE id = $2", ("t", "p1"))]

    def test_no_params_sends_none(self):
        backend = FakePostgresBackend()
        Database(backend).execute("DELETE FROM solutions")
        assert backend.conn.calls == [("DELETE FROM solutions", None)]

    def test_column_exists_queries_information_schema(self):
        backend = FakePostgresBackend(row={"present": True})
        assert column_exists(Database(backend), "users", "role")
        sql, params = backend.conn.calls[0]
        assert "information_schema.columns" in sql
        assert "current_schema()" in sql
        assert "$1" in sql and "$2" in sql and "?" not in sql
        assert params == ("users", "role")

    def test_column_missing(self):
        backend = FakePostgresBackend(row={"present": False})
        assert not column_exists(Database(backend), "patterns", "theory")


class TestSQLitePath:
    @pytest.fixture
    def lite(self, tmp_path):
        db = Database(SQLiteBackend(str(tmp_path / "f.db")))
        db.execute("CREATE TABLE t (id TEXT PRIMARY KEY, v TEXT NOT NULL)")
        yield db
        db.close()

    def test_rows_are_dicts(self, lite):
        lite.execute("INSERT INTO t (id, v) VALUES (?, ?)", ("a", "1"))
        assert lite.fetchone("SELECT id, v FROM t WHERE id = ?", ("a",)) == {"id": "a", "v": "1"}
        assert lite.fetchall("SELECT id FROM t") == [{"id": "a"}]
        assert lite.fetchone("SELECT id FROM t WHERE id = ?", ("zz",)) is None

    def test_execute_returns_rowcount(self, lite):
        lite.execute("INSERT INTO t (id, v) VALUES ('a', '1')")
        lite.execute("INSERT INTO t (id, v) VALUES ('b', '1')")
        assert lite.execute("UPDATE t SET v = '2'") == 2
        assert lite.execute("DELETE FROM t WHERE id = 'nope'") == 0

    def test_constraint_violation(self, lite):
        lite.execute("INSERT INTO t (id, v) VALUES ('a', '1')")
        with pytest.raises(IntegrityViolation) as exc:
            lite.execute("INSERT INTO t (id, v) VALUES ('a', '2')")
        assert isinstance(exc.value.__cause__, sqlite3.IntegrityError)

    def test_driver_error_is_wrapped(self, lite):
        with pytest.raises(QueryError) as exc:
            lite.fetchall("SELECT * FROM missing_table")
        assert "missing_table" not in str(exc.value)
        assert "missing_table" in str(exc.value.__cause__)
