"""Tests for schema.py — creation, idempotence and additive migrations."""

import pytest

from database import Database, IntegrityViolation
from dialect import SQLiteBackend
from schema import (
    MIGRATIONS,
    ColumnMigration,
    column_exists,
    create_schema,
    ensure_email_index,
    init_schema,
    migrate,
    schema_statements,
    timestamp_type,
)

TABLES = [
    "users", "categories", "patterns", "problems", "solutions",
    "learning_topics", "learning_resources", "roadmap_items",
]


@pytest.fixture
def raw_db(tmp_path):
    db = Database(SQLiteBackend(str(tmp_path / "schema.db")))
    yield db
    db.close()


def _tables(db):
    rows = db.fetchall("SELECT name FROM sqlite_master WHERE type = 'table'")
    return {r["name"] for r in rows}


class TestSchemaStatements:
    def test_timestamp_type_per_engine(self):
        assert timestamp_type(True).startswith("TIMESTAMP")
        assert timestamp_type(False).startswith("DATETIME")

    def test_statements_only_differ_in_timestamp_type(self):
        pg = schema_statements(True)
        lite = schema_statements(False)
        assert len(pg) == len(lite)
        for a, b in zip(pg, lite):
            assert a.replace(timestamp_type(True), timestamp_type(False)) == b

    def test_every_table_declared(self):
        ddl = "\n".join(schema_statements(False))
        for table in TABLES:
            assert f"CREATE TABLE IF NOT EXISTS {table} (" in ddl


class TestInitSchema:
    def test_creates_all_tables(self, raw_db):
        init_schema(raw_db)
        assert set(TABLES) <= _tables(raw_db)

    def test_running_twice_is_a_no_op(self, raw_db):
        init_schema(raw_db)
        raw_db.execute(
            "INSERT INTO categories (id, name, icon, description) VALUES ('c1', 'Arrays', 'Grid', '')"
        )
        init_schema(raw_db)
        assert migrate(raw_db) == []
        assert raw_db.fetchone("SELECT COUNT(*) AS n FROM categories")["n"] == 1

    def test_fresh_schema_needs_no_migration(self, raw_db):
        create_schema(raw_db)
        assert migrate(raw_db) == []

    def test_solution_language_unique_per_problem(self, raw_db):
        init_schema(raw_db)
        raw_db.execute("INSERT INTO categories (id, name, icon, description) VALUES ('c', 'C', '', '')")
        raw_db.execute(
            "INSERT INTO patterns (id, category_id, name, icon, description) VALUES ('p', 'c', 'P', '', '')"
        )
        raw_db.execute(
            "INSERT INTO problems (id, pattern_id, title, difficulty, description, input, output, "
            "constraints, sample_input, sample_output, explanation, notes) "
            "VALUES ('x', 'p', 'T', 'Easy', '', '', '', '', '', '', '', '')"
        )
        raw_db.execute("INSERT INTO solutions (id, problem_id, language, code) VALUES ('s1', 'x', 'go', '')")
        with pytest.raises(IntegrityViolation):
            raw_db.execute("INSERT INTO solutions (id, problem_id, language, code) VALUES ('s2', 'x', 'go', '')")

    def test_foreign_keys_enforced(self, raw_db):
        init_schema(raw_db)
        with pytest.raises(IntegrityViolation):
            raw_db.execute(
                "INSERT INTO patterns (id, category_id, name, icon, description) "
                "VALUES ('p', 'missing', 'P', '', '')"
            )


class TestMigrations:
    def _legacy_tables(self, db):
        """Tables as they looked before role, theory and email_normalized existed."""
        db.execute(
            "CREATE TABLE users (id TEXT PRIMARY KEY, email TEXT UNIQUE NOT NULL, "
            "name TEXT NOT NULL, password TEXT NOT NULL, created_at DATETIME)"
        )
        db.execute(
            "CREATE TABLE categories (id TEXT PRIMARY KEY, name TEXT NOT NULL, icon TEXT NOT NULL, "
            "description TEXT NOT NULL, created_at DATETIME, updated_at DATETIME)"
        )
        db.execute(
            "CREATE TABLE patterns (id TEXT PRIMARY KEY, category_id TEXT NOT NULL, "
            "name TEXT NOT NULL, icon TEXT NOT NULL, description TEXT NOT NULL, "
            "created_at DATETIME, updated_at DATETIME)"
        )
        db.execute(
            "INSERT INTO users (id, email, name, password) VALUES ('u1', '  Old@Example.COM ', 'Old', 'x')"
        )
        db.execute("INSERT INTO categories (id, name, icon, description) VALUES ('c1', 'C', '', '')")
        db.execute(
            "INSERT INTO patterns (id, category_id, name, icon, description) VALUES ('p1', 'c1', 'P', '', '')"
        )

    def test_adds_missing_columns_and_backfills(self, raw_db):
        self._legacy_tables(raw_db)
        init_schema(raw_db)

        for m in MIGRATIONS:
            assert column_exists(raw_db, m.table, m.column)
        user = raw_db.fetchone("SELECT role, email_normalized FROM users WHERE id = 'u1'")
        assert user["role"] == "admin"
        assert user["email_normalized"] == "old@example.com"
        pattern = raw_db.fetchone("SELECT theory FROM patterns WHERE id = 'p1'")
        assert pattern["theory"] == ""

    def test_migrate_reports_added_columns_once(self, raw_db):
        self._legacy_tables(raw_db)
        create_schema(raw_db)
        added = migrate(raw_db)
        assert set(added) == {"users.role", "patterns.theory", "users.email_normalized"}
        assert migrate(raw_db) == []

    def test_column_exists(self, raw_db):
        init_schema(raw_db)
        assert column_exists(raw_db, "patterns", "theory")
        assert not column_exists(raw_db, "patterns", "nonexistent")

    def test_alter_sql(self):
        m = ColumnMigration("users", "role", "TEXT DEFAULT 'admin'", "")
        assert m.alter_sql() == "ALTER TABLE users ADD COLUMN role TEXT DEFAULT 'admin'"


class TestEmailIndex:
    def test_unique_on_fresh_schema(self, raw_db):
        init_schema(raw_db)
        raw_db.execute(
            "INSERT INTO users (id, email, email_normalized, name, password) "
            "VALUES ('u1', 'a@x.com', 'a@x.com', 'A', 'x')"
        )
        with pytest.raises(IntegrityViolation):
            raw_db.execute(
                "INSERT INTO users (id, email, email_normalized, name, password) "
                "VALUES ('u2', 'A@x.com', 'a@x.com', 'B', 'x')"
            )

    def test_legacy_collisions_fall_back_to_plain_index(self, raw_db):
        raw_db.execute(
            "CREATE TABLE users (id TEXT PRIMARY KEY, email TEXT UNIQUE NOT NULL, "
            "name TEXT NOT NULL, password TEXT NOT NULL, created_at DATETIME)"
        )
        raw_db.execute("INSERT INTO users (id, email, name, password) VALUES ('u1', 'A@x.com', 'A', 'x')")
        raw_db.execute("INSERT INTO users (id, email, name, password) VALUES ('u2', 'a@x.com', 'B', 'x')")
        init_schema(raw_db)

        assert ensure_email_index(raw_db) is False
        names = {r["name"] for r in raw_db.fetchall("SELECT name FROM sqlite_master WHERE type = 'index'")}
        assert "idx_users_email_normalized" in names
        assert "uq_users_email_normalized" not in names
