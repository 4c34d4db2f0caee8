"""
DB-backed stores for AlgoVault.

One class per entity family. Every method is a single statement (or a
sequence of independent single statements); cascading deletes are left to
the foreign keys declared in schema.py.
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Iterable
from typing import Any

from werkzeug.security import generate_password_hash

from database import Database, IntegrityViolation, NotFoundError
from models import (
    DIFFICULTIES,
    PROBLEM_TEXT_FIELDS,
    ROLE_ADMIN,
    ROLES,
    Category,
    LearningResource,
    LearningTopic,
    Pattern,
    Problem,
    RoadmapItem,
    Solution,
    User,
    iso,
    now_ts,
)

logger = logging.getLogger(__name__)


class ValidationError(ValueError):
    """Client-supplied data is unusable."""


class DuplicateEmail(ValueError):
    """An account with this email already exists."""


def generate_id() -> str:
    return secrets.token_hex(16)


def normalize_email(email: str) -> str:
    return _text(email).strip().lower()


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _require(value: Any, label: str) -> str:
    text = _text(value).strip()
    if not text:
        raise ValidationError(f"{label} is required")
    return text


def _difficulty(value: Any) -> str:
    text = _text(value).strip().capitalize()
    if text not in DIFFICULTIES:
        raise ValidationError(f"difficulty must be one of {', '.join(DIFFICULTIES)}")
    return text


# ── Categories ───────────────────────────────────────────────────────


class CategoryStoreDB:
    _SELECT = """
        SELECT c.id, c.name, c.icon, c.description, c.created_at, c.updated_at,
               COUNT(DISTINCT p.id) AS pattern_count
        FROM categories c
        LEFT JOIN patterns p ON p.category_id = c.id
    """
    _GROUP = " GROUP BY c.id, c.name, c.icon, c.description, c.created_at, c.updated_at"

    def __init__(self, db: Database):
        self.db = db

    def list(self) -> list[Category]:
        rows = self.db.fetchall(self._SELECT + self._GROUP + " ORDER BY c.created_at ASC, c.id ASC")
        return [Category.from_row(r) for r in rows]

    def get(self, category_id: str) -> Category:
        row = self.db.fetchone(self._SELECT + " WHERE c.id = ?" + self._GROUP, (category_id,))
        if row is None:
            raise NotFoundError("Category", category_id)
        return Category.from_row(row)

    def create(self, name: str, icon: str = "", description: str = "") -> Category:
        ts = now_ts()
        cat = Category(id=generate_id(), name=_require(name, "name"), icon=_text(icon),
                       description=_text(description), created_at=ts, updated_at=ts)
        self.db.execute(
            "INSERT INTO categories (id, name, icon, description, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (cat.id, cat.name, cat.icon, cat.description, cat.created_at, cat.updated_at),
        )
        return cat

    def update(self, category_id: str, name: str, icon: str = "", description: str = "") -> Category:
        count = self.db.execute(
            "UPDATE categories SET name = ?, icon = ?, description = ?, updated_at = ? WHERE id = ?",
            (_require(name, "name"), _text(icon), _text(description), now_ts(), category_id),
        )
        if not count:
            raise NotFoundError("Category", category_id)
        return self.get(category_id)

    def delete(self, category_id: str) -> None:
        """Patterns, problems and solutions go with it via ON DELETE CASCADE."""
        if not self.db.execute("DELETE FROM categories WHERE id = ?", (category_id,)):
            raise NotFoundError("Category", category_id)


# ── Patterns ─────────────────────────────────────────────────────────


class PatternStoreDB:
    _SELECT = """
        SELECT p.id, p.category_id, p.name, p.icon, p.description,
               COALESCE(p.theory, '') AS theory, p.created_at, p.updated_at,
               COUNT(DISTINCT pr.id) AS problem_count
        FROM patterns p
        LEFT JOIN problems pr ON pr.pattern_id = p.id
    """
    _GROUP = (" GROUP BY p.id, p.category_id, p.name, p.icon, p.description, p.theory,"
              " p.created_at, p.updated_at")

    def __init__(self, db: Database):
        self.db = db

    def list(self, category_id: str) -> list[Pattern]:
        rows = self.db.fetchall(
            self._SELECT + " WHERE p.category_id = ?" + self._GROUP
            + " ORDER BY p.created_at ASC, p.id ASC",
            (category_id,),
        )
        return [Pattern.from_row(r) for r in rows]

    def get(self, pattern_id: str) -> Pattern:
        row = self.db.fetchone(self._SELECT + " WHERE p.id = ?" + self._GROUP, (pattern_id,))
        if row is None:
            raise NotFoundError("Pattern", pattern_id)
        return Pattern.from_row(row)

    def create(self, category_id: str, name: str, icon: str = "",
               description: str = "", theory: str = "") -> Pattern:
        ts = now_ts()
        pat = Pattern(id=generate_id(), category_id=category_id, name=_require(name, "name"),
                      icon=_text(icon), description=_text(description), theory=_text(theory),
                      created_at=ts, updated_at=ts)
        try:
            self.db.execute(
                "INSERT INTO patterns (id, category_id, name, icon, description, theory, "
                "created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (pat.id, pat.category_id, pat.name, pat.icon, pat.description, pat.theory,
                 pat.created_at, pat.updated_at),
            )
        except IntegrityViolation as e:
            raise NotFoundError("Category", category_id) from e
        return pat

    def update(self, pattern_id: str, name: str, icon: str = "",
               description: str = "", theory: str = "") -> Pattern:
        count = self.db.execute(
            "UPDATE patterns SET name = ?, icon = ?, description = ?, theory = ?, updated_at = ? "
            "WHERE id = ?",
            (_require(name, "name"), _text(icon), _text(description), _text(theory),
             now_ts(), pattern_id),
        )
        if not count:
            raise NotFoundError("Pattern", pattern_id)
        return self.get(pattern_id)

    def update_theory(self, pattern_id: str, theory: str) -> None:
        count = self.db.execute(
            "UPDATE patterns SET theory = ?, updated_at = ? WHERE id = ?",
            (_text(theory), now_ts(), pattern_id),
        )
        if not count:
            raise NotFoundError("Pattern", pattern_id)

    def delete(self, pattern_id: str) -> None:
        if not self.db.execute("DELETE FROM patterns WHERE id = ?", (pattern_id,)):
            raise NotFoundError("Pattern", pattern_id)


# ── Solutions ────────────────────────────────────────────────────────


class SolutionStoreDB:
    """At most one solution per (problem, language)."""

    def __init__(self, db: Database):
        self.db = db

    def list(self, problem_id: str) -> list[Solution]:
        rows = self.db.fetchall(
            "SELECT id, problem_id, language, code, created_at, updated_at "
            "FROM solutions WHERE problem_id = ? ORDER BY created_at ASC, language ASC",
            (problem_id,),
        )
        return [Solution.from_row(r) for r in rows]

    def list_for_pattern(self, pattern_id: str) -> dict[str, list[Solution]]:
        rows = self.db.fetchall(
            "SELECT s.id, s.problem_id, s.language, s.code, s.created_at, s.updated_at "
            "FROM solutions s JOIN problems p ON p.id = s.problem_id "
            "WHERE p.pattern_id = ? ORDER BY s.created_at ASC, s.language ASC",
            (pattern_id,),
        )
        grouped: dict[str, list[Solution]] = {}
        for r in rows:
            grouped.setdefault(r["problem_id"], []).append(Solution.from_row(r))
        return grouped

    def upsert(self, problem_id: str, language: str, code: str) -> Solution:
        """Insert, or update the code in place keeping the existing id."""
        language = _require(language, "language")
        code = _text(code)
        ts = now_ts()
        existing = self.db.fetchone(
            "SELECT id, created_at FROM solutions WHERE problem_id = ? AND language = ?",
            (problem_id, language),
        )
        if existing is None:
            sol = Solution(id=generate_id(), problem_id=problem_id, language=language,
                           code=code, created_at=ts, updated_at=ts)
            try:
                self.db.execute(
                    "INSERT INTO solutions (id, problem_id, language, code, created_at, updated_at) "
                    "VALUES (?, ?, ?, ?, ?, ?)",
                    (sol.id, sol.problem_id, sol.language, sol.code, sol.created_at, sol.updated_at),
                )
                return sol
            except IntegrityViolation:
                # Unknown problem, or a concurrent insert won the unique slot.
                existing = self.db.fetchone(
                    "SELECT id, created_at FROM solutions WHERE problem_id = ? AND language = ?",
                    (problem_id, language),
                )
                if existing is None:
                    raise NotFoundError("Problem", problem_id)

        self.db.execute(
            "UPDATE solutions SET code = ?, updated_at = ? WHERE id = ?",
            (code, ts, existing["id"]),
        )
        return Solution(id=existing["id"], problem_id=problem_id, language=language, code=code,
                        created_at=iso(existing["created_at"]), updated_at=ts)

    def save_all(self, problem_id: str, solutions: Iterable[dict[str, Any]]) -> list[Solution]:
        """Upsert each given language; languages not mentioned are left alone."""
        return [self.upsert(problem_id, s.get("language"), s.get("code")) for s in solutions]


# ── Problems ─────────────────────────────────────────────────────────


class ProblemStoreDB:
    _COLUMNS = ("id, pattern_id, title, difficulty, " + ", ".join(PROBLEM_TEXT_FIELDS)
                + ", created_at, updated_at")

    def __init__(self, db: Database):
        self.db = db
        self.solutions = SolutionStoreDB(db)

    def list(self, pattern_id: str) -> list[Problem]:
        rows = self.db.fetchall(
            f"SELECT {self._COLUMNS} FROM problems WHERE pattern_id = ? "
            "ORDER BY created_at ASC, id ASC",
            (pattern_id,),
        )
        by_problem = self.solutions.list_for_pattern(pattern_id) if rows else {}
        problems = []
        for r in rows:
            prob = Problem.from_row(r)
            prob.solutions = by_problem.get(prob.id, [])
            problems.append(prob)
        return problems

    def get(self, problem_id: str) -> Problem:
        row = self.db.fetchone(f"SELECT {self._COLUMNS} FROM problems WHERE id = ?", (problem_id,))
        if row is None:
            raise NotFoundError("Problem", problem_id)
        prob = Problem.from_row(row)
        prob.solutions = self.solutions.list(problem_id)
        return prob

    @staticmethod
    def _fields(data: dict[str, Any]) -> dict[str, str]:
        fields = {
            "title": _require(data.get("title"), "title"),
            "difficulty": _difficulty(data.get("difficulty")),
        }
        for f in PROBLEM_TEXT_FIELDS:
            fields[f] = _text(data.get(f))
        return fields

    def create(self, pattern_id: str, data: dict[str, Any],
               solutions: Iterable[dict[str, Any]] = ()) -> Problem:
        """``data`` uses snake_case keys; id and timestamps are always ours."""
        fields = self._fields(data)
        solutions = list(solutions)
        for s in solutions:
            _require(s.get("language"), "language")
        ts = now_ts()
        problem_id = generate_id()
        columns = ["id", "pattern_id", *fields, "created_at", "updated_at"]
        values = [problem_id, pattern_id, *fields.values(), ts, ts]
        try:
            self.db.execute(
                f"INSERT INTO problems ({', '.join(columns)}) "
                f"VALUES ({', '.join('?' for _ in columns)})",
                values,
            )
        except IntegrityViolation as e:
            raise NotFoundError("Pattern", pattern_id) from e
        self.solutions.save_all(problem_id, solutions)
        return self.get(problem_id)

    def update(self, problem_id: str, data: dict[str, Any],
               solutions: Iterable[dict[str, Any]] | None = None) -> Problem:
        fields = self._fields(data)
        if solutions is not None:
            solutions = list(solutions)
            for s in solutions:
                _require(s.get("language"), "language")
        assignments = ", ".join(f"{k} = ?" for k in fields)
        count = self.db.execute(
            f"UPDATE problems SET {assignments}, updated_at = ? WHERE id = ?",
            [*fields.values(), now_ts(), problem_id],
        )
        if not count:
            raise NotFoundError("Problem", problem_id)
        if solutions is not None:
            self.solutions.save_all(problem_id, solutions)
        return self.get(problem_id)

    def delete(self, problem_id: str) -> None:
        if not self.db.execute("DELETE FROM problems WHERE id = ?", (problem_id,)):
            raise NotFoundError("Problem", problem_id)


# ── Learning hierarchy (read-only) ───────────────────────────────────


class LearningStoreDB:
    def __init__(self, db: Database):
        self.db = db

    def list_topics(self) -> list[LearningTopic]:
        rows = self.db.fetchall(
            "SELECT id, name, icon, description, slug, created_at, updated_at "
            "FROM learning_topics ORDER BY name ASC"
        )
        return [LearningTopic.from_row(r) for r in rows]

    def get_topic_by_slug(self, slug: str) -> LearningTopic:
        row = self.db.fetchone(
            "SELECT id, name, icon, description, slug, created_at, updated_at "
            "FROM learning_topics WHERE slug = ?",
            (slug,),
        )
        if row is None:
            raise NotFoundError("Topic", slug)
        return LearningTopic.from_row(row)

    def list_resources(self, topic_id: str) -> list[LearningResource]:
        rows = self.db.fetchall(
            "SELECT id, topic_id, title, content, type, url, order_index, created_at, updated_at "
            "FROM learning_resources WHERE topic_id = ? ORDER BY order_index ASC",
            (topic_id,),
        )
        return [LearningResource.from_row(r) for r in rows]

    def roadmap(self, topic_id: str) -> list[RoadmapItem]:
        rows = self.db.fetchall(
            "SELECT id, topic_id, title, description, order_index, status, created_at, updated_at "
            "FROM roadmap_items WHERE topic_id = ? ORDER BY order_index ASC",
            (topic_id,),
        )
        return [RoadmapItem.from_row(r) for r in rows]


# ── Users ────────────────────────────────────────────────────────────


class UserStoreDB:
    """Emails are lower-cased at write time and looked up on that column."""

    _COLUMNS = "id, email, name, password, COALESCE(role, 'admin') AS role, created_at"

    def __init__(self, db: Database):
        self.db = db

    def get(self, user_id: str) -> User:
        row = self.db.fetchone(f"SELECT {self._COLUMNS} FROM users WHERE id = ?", (user_id,))
        if row is None:
            raise NotFoundError("User", user_id)
        return User.from_row(row)

    def get_role(self, user_id: str) -> str:
        row = self.db.fetchone("SELECT role FROM users WHERE id = ?", (user_id,))
        if row is None:
            raise NotFoundError("User", user_id)
        return row["role"] or ROLE_ADMIN

    def find_by_email(self, email: str) -> dict[str, Any] | None:
        """Row including the password hash, or None."""
        return self.db.fetchone(
            f"SELECT {self._COLUMNS} FROM users WHERE email_normalized = ?",
            (normalize_email(email),),
        )

    def create(self, email: str, name: str, password: str, role: str = ROLE_ADMIN,
               user_id: str | None = None) -> User:
        email = normalize_email(email)
        if not email or not password or not _text(name).strip():
            raise ValidationError("Email, password, and name are required")
        if role not in ROLES:
            raise ValidationError(f"role must be one of {', '.join(ROLES)}")
        if self.find_by_email(email) is not None:
            raise DuplicateEmail(email)
        user = User(id=user_id or generate_id(), email=email, name=_text(name).strip(),
                    role=role, created_at=now_ts())
        try:
            self.db.execute(
                "INSERT INTO users (id, email, email_normalized, name, password, role, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (user.id, user.email, email, user.name, generate_password_hash(password),
                 user.role, user.created_at),
            )
        except IntegrityViolation as e:
            raise DuplicateEmail(email) from e
        return user


# ── Bulk operations ──────────────────────────────────────────────────


CLEAR_ORDER = (
    "solutions", "problems", "patterns", "categories",
    "learning_resources", "roadmap_items", "learning_topics",
)


class CatalogueImporter:
    """Bulk import of a nested category/pattern/problem structure, and bulk clear."""

    def __init__(self, db: Database):
        self.db = db
        self.categories = CategoryStoreDB(db)
        self.patterns = PatternStoreDB(db)
        self.problems = ProblemStoreDB(db)

    def import_structure(self, payload: dict[str, Any]) -> dict[str, int]:
        """Create whatever is missing, matched by name/title under the parent.

        Items that fail are logged and skipped, so a re-run picks them up.
        A malformed structure is rejected before anything is written.
        """
        self._check_structure(payload)
        stats = {"categoriesCreated": 0, "patternsCreated": 0, "problemsCreated": 0}
        for t_cat in payload.get("categories") or []:
            name = _text(t_cat.get("name")).strip()
            if not name:
                continue
            row = self.db.fetchone("SELECT id FROM categories WHERE name = ?", (name,))
            if row is None:
                cat_id = self.categories.create(name, "Globe", _text(t_cat.get("description"))).id
                stats["categoriesCreated"] += 1
            else:
                cat_id = row["id"]

            for t_pat in t_cat.get("patterns") or []:
                pat_name = _text(t_pat.get("name")).strip()
                if not pat_name:
                    continue
                row = self.db.fetchone(
                    "SELECT id FROM patterns WHERE name = ? AND category_id = ?", (pat_name, cat_id),
                )
                if row is None:
                    pat_id = self.patterns.create(
                        cat_id, pat_name, "Code", _text(t_pat.get("description")),
                    ).id
                    stats["patternsCreated"] += 1
                else:
                    pat_id = row["id"]

                for t_prob in t_pat.get("matched_problems") or []:
                    if self._import_problem(pat_id, t_prob):
                        stats["problemsCreated"] += 1
        logger.info("Bulk import finished: %s", stats)
        return stats

    @staticmethod
    def _check_structure(payload: dict[str, Any]) -> None:
        """Every nested collection must be a list of objects."""
        def objects(value: Any, path: str) -> list[dict[str, Any]]:
            if value is None:
                return []
            if not isinstance(value, list) or not all(isinstance(v, dict) for v in value):
                raise ValidationError(f"{path} must be a list of objects")
            return value

        for i, t_cat in enumerate(objects(payload.get("categories"), "categories")):
            for j, t_pat in enumerate(objects(t_cat.get("patterns"), f"categories[{i}].patterns")):
                objects(t_pat.get("matched_problems"),
                        f"categories[{i}].patterns[{j}].matched_problems")

    def _import_problem(self, pattern_id: str, t_prob: dict[str, Any]) -> bool:
        title = _text(t_prob.get("title")).strip()
        if not title:
            return False
        exists = self.db.fetchone(
            "SELECT id FROM problems WHERE title = ? AND pattern_id = ?", (title, pattern_id),
        )
        if exists is not None:
            return False
        difficulty = _text(t_prob.get("difficulty")).strip().capitalize()
        try:
            self.problems.create(pattern_id, {
                "title": title,
                "difficulty": difficulty if difficulty in DIFFICULTIES else "Medium",
                "description": "Description pending fetch...",
                "input": "See description",
                "output": "See description",
                "constraints": "No specific constraints provided.",
            })
        except (ValidationError, NotFoundError) as e:
            logger.warning("Skipping imported problem %r: %s", title, e)
            return False
        return True

    def clear_all(self) -> None:
        """Delete every catalogue and learning row; users are kept."""
        for table in CLEAR_ORDER:
            self.db.execute(f"DELETE FROM {table}")
        logger.info("All catalogue and learning data cleared")
