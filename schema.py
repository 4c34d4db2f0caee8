"""
Schema manager — create tables, then apply additive column migrations.

There is no version table. Each migration is checked by introspecting the
live table on every boot, so the set is safe to re-run and re-order. New
columns are always nullable with a default; nothing is dropped or retyped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from database import Database

logger = logging.getLogger(__name__)


def timestamp_type(is_postgres: bool) -> str:
    if is_postgres:
        return "TIMESTAMP DEFAULT CURRENT_TIMESTAMP"
    return "DATETIME DEFAULT CURRENT_TIMESTAMP"


def schema_statements(is_postgres: bool) -> list[str]:
    """DDL for every table and FK index, in dependency order."""
    ts = timestamp_type(is_postgres)
    return [
        f"""CREATE TABLE IF NOT EXISTS users (
            id TEXT PRIMARY KEY,
            email TEXT UNIQUE NOT NULL,
            name TEXT NOT NULL,
            password TEXT NOT NULL,
            role TEXT NOT NULL DEFAULT 'admin',
            email_normalized TEXT DEFAULT '',
            created_at {ts}
        )""",
        f"""CREATE TABLE IF NOT EXISTS categories (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            icon TEXT NOT NULL,
            description TEXT NOT NULL,
            created_at {ts},
            updated_at {ts}
        )""",
        f"""CREATE TABLE IF NOT EXISTS patterns (
            id TEXT PRIMARY KEY,
            category_id TEXT NOT NULL,
            name TEXT NOT NULL,
            icon TEXT NOT NULL,
            description TEXT NOT NULL,
            theory TEXT DEFAULT '',
            created_at {ts},
            updated_at {ts},
            FOREIGN KEY (category_id) REFERENCES categories(id) ON DELETE CASCADE
        )""",
        f"""CREATE TABLE IF NOT EXISTS problems (
            id TEXT PRIMARY KEY,
            pattern_id TEXT NOT NULL,
            title TEXT NOT NULL,
            difficulty TEXT NOT NULL,
            description TEXT NOT NULL,
            input TEXT NOT NULL,
            output TEXT NOT NULL,
            constraints TEXT NOT NULL,
            sample_input TEXT NOT NULL,
            sample_output TEXT NOT NULL,
            explanation TEXT NOT NULL,
            notes TEXT NOT NULL,
            created_at {ts},
            updated_at {ts},
            FOREIGN KEY (pattern_id) REFERENCES patterns(id) ON DELETE CASCADE
        )""",
        f"""CREATE TABLE IF NOT EXISTS solutions (
            id TEXT PRIMARY KEY,
            problem_id TEXT NOT NULL,
            language TEXT NOT NULL,
            code TEXT NOT NULL,
            created_at {ts},
            updated_at {ts},
            FOREIGN KEY (problem_id) REFERENCES problems(id) ON DELETE CASCADE,
            UNIQUE(problem_id, language)
        )""",
        f"""CREATE TABLE IF NOT EXISTS learning_topics (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            icon TEXT NOT NULL,
            description TEXT NOT NULL,
            slug TEXT UNIQUE NOT NULL,
            created_at {ts},
            updated_at {ts}
        )""",
        f"""CREATE TABLE IF NOT EXISTS learning_resources (
            id TEXT PRIMARY KEY,
            topic_id TEXT NOT NULL,
            title TEXT NOT NULL,
            content TEXT NOT NULL,
            type TEXT NOT NULL,
            url TEXT,
            order_index INTEGER DEFAULT 0,
            created_at {ts},
            updated_at {ts},
            FOREIGN KEY (topic_id) REFERENCES learning_topics(id) ON DELETE CASCADE
        )""",
        f"""CREATE TABLE IF NOT EXISTS roadmap_items (
            id TEXT PRIMARY KEY,
            topic_id TEXT NOT NULL,
            title TEXT NOT NULL,
            description TEXT NOT NULL,
            order_index INTEGER DEFAULT 0,
            status TEXT DEFAULT 'todo',
            created_at {ts},
            updated_at {ts},
            FOREIGN KEY (topic_id) REFERENCES learning_topics(id) ON DELETE CASCADE
        )""",
        "CREATE INDEX IF NOT EXISTS idx_patterns_category_id ON patterns(category_id)",
        "CREATE INDEX IF NOT EXISTS idx_problems_pattern_id ON problems(pattern_id)",
        "CREATE INDEX IF NOT EXISTS idx_solutions_problem_id ON solutions(problem_id)",
        "CREATE INDEX IF NOT EXISTS idx_learning_resources_topic_id ON learning_resources(topic_id)",
        "CREATE INDEX IF NOT EXISTS idx_roadmap_items_topic_id ON roadmap_items(topic_id)",
    ]


@dataclass(frozen=True)
class ColumnMigration:
    """Add ``column`` to ``table`` if missing, then backfill old rows."""

    table: str
    column: str
    definition: str
    backfill: str

    def alter_sql(self) -> str:
        return f"ALTER TABLE {self.table} ADD COLUMN {self.column} {self.definition}"


MIGRATIONS: list[ColumnMigration] = [
    ColumnMigration(
        "users", "role", "TEXT DEFAULT 'admin'",
        "UPDATE users SET role = 'admin' WHERE role IS NULL",
    ),
    ColumnMigration(
        "patterns", "theory", "TEXT DEFAULT ''",
        "UPDATE patterns SET theory = '' WHERE theory IS NULL",
    ),
    ColumnMigration(
        "users", "email_normalized", "TEXT DEFAULT ''",
        "UPDATE users SET email_normalized = LOWER(TRIM(email)) "
        "WHERE email_normalized IS NULL OR email_normalized = ''",
    ),
]

# Indexes over migrated columns; created only once the columns exist.
EMAIL_UNIQUE_INDEX = (
    "CREATE UNIQUE INDEX IF NOT EXISTS uq_users_email_normalized "
    "ON users(email_normalized) WHERE email_normalized <> ''"
)
EMAIL_PLAIN_INDEX = "CREATE INDEX IF NOT EXISTS idx_users_email_normalized ON users(email_normalized)"


def column_exists(db: Database, table: str, column: str) -> bool:
    """Introspect the live table definition."""
    if db.is_postgres:
        row = db.fetchone(
            "SELECT EXISTS (SELECT 1 FROM information_schema.columns "
            "WHERE table_schema = current_schema() AND table_name = ? "
            "AND column_name = ?) AS present",
            (table, column),
        )
        return bool(row and row["present"])
    rows = db.fetchall(f"PRAGMA table_info({table})")
    return any(r["name"] == column for r in rows)


def create_schema(db: Database) -> None:
    for stmt in schema_statements(db.is_postgres):
        db.execute(stmt)


def ensure_email_index(db: Database) -> bool:
    """Index users.email_normalized, uniquely unless legacy rows collide.

    Returns True when the unique index is in place.
    """
    dupes = db.fetchall(
        "SELECT email_normalized FROM users WHERE email_normalized <> '' "
        "GROUP BY email_normalized HAVING COUNT(*) > 1"
    )
    if dupes:
        logger.warning(
            "Not enforcing unique emails: %d address(es) already used by several accounts",
            len(dupes),
        )
        db.execute(EMAIL_PLAIN_INDEX)
        return False
    db.execute(EMAIL_UNIQUE_INDEX)
    return True


def migrate(db: Database) -> list[str]:
    """Apply missing additive migrations; return the columns added."""
    added = []
    for m in MIGRATIONS:
        if column_exists(db, m.table, m.column):
            continue
        logger.info("Migrating: adding %s.%s", m.table, m.column)
        db.execute(m.alter_sql())
        db.execute(m.backfill)
        added.append(f"{m.table}.{m.column}")
    ensure_email_index(db)
    return added


def init_schema(db: Database) -> None:
    """Create then migrate. Any failure propagates and is fatal."""
    create_schema(db)
    added = migrate(db)
    logger.info("Schema ready (%d column(s) migrated)", len(added))
