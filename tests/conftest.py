"""
Test fixtures for AlgoVault.

Provides app, client, db and bearer-header fixtures over a file-based
SQLite database that is created, migrated and seeded synchronously.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

ADMIN_EMAIL = "admin@test.com"
ADMIN_PASSWORD = "adminpass123"


@pytest.fixture
def app_config(tmp_path):
    return {
        "TESTING": True,
        "DATABASE_URL": "",
        "DATABASE_PATH": str(tmp_path / "test.db"),
        "DB_INIT_SYNC": True,
        "SECRET_KEY": "test-secret-key",
        "JWT_SECRET": "test-jwt-secret",
    }


@pytest.fixture
def app(app_config):
    """Create app with file-based SQLite for testing."""
    from app import create_app

    app = create_app(app_config)
    yield app
    app.extensions["db_gate"].close()


@pytest.fixture
def client(app):
    """Unauthenticated test client."""
    return app.test_client()


@pytest.fixture
def db(app):
    """The initialised Database behind the app."""
    return app.extensions["db_gate"].get()


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_user(db):
    from db_stores import UserStoreDB

    return UserStoreDB(db).create(ADMIN_EMAIL, "Test Admin", ADMIN_PASSWORD)


@pytest.fixture
def admin_headers(app, admin_user):
    from auth import create_access_token

    with app.app_context():
        return bearer(create_access_token(admin_user.id, admin_user.role))


@pytest.fixture
def demo_headers(client):
    """Log in as the seeded read-only demo account."""
    resp = client.post("/api/login", json={"email": "demo@algovault.com", "password": "demo123"})
    assert resp.status_code == 200
    return bearer(resp.get_json()["token"])


@pytest.fixture
def sample_tree(db):
    """One category -> one pattern -> one problem with a Python solution."""
    from db_stores import CategoryStoreDB, PatternStoreDB, ProblemStoreDB

    cat = CategoryStoreDB(db).create("Arrays", "Grid", "Array problems")
    pat = PatternStoreDB(db).create(cat.id, "Two Pointers", "Code", "Converging indices")
    prob = ProblemStoreDB(db).create(
        pat.id,
        {"title": "Pair Sum", "difficulty": "Easy", "description": "Find a pair"},
        [{"language": "python", "code": "print(1)"}],
    )
    return {"category": cat, "pattern": pat, "problem": prob}
