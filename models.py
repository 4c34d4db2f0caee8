"""
Entity dataclasses for the practice catalogue and learning hierarchy.

``to_dict()`` gives the camelCase JSON shape served by the API;
``from_row()`` builds an instance from a database row dict.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

ROLE_ADMIN = "admin"
ROLE_DEMO = "demo"
ROLES = (ROLE_ADMIN, ROLE_DEMO)

DIFFICULTIES = ("Easy", "Medium", "Hard")

# Free-text problem columns, in table order.
PROBLEM_TEXT_FIELDS = (
    "description", "input", "output", "constraints",
    "sample_input", "sample_output", "explanation", "notes",
)


def now_ts() -> str:
    return datetime.now().isoformat()


def iso(value: Any) -> str:
    """SQLite hands back text, PostgreSQL hands back datetime."""
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(p.title() for p in rest)


@dataclass
class User:
    id: str
    email: str
    name: str
    role: str = ROLE_ADMIN
    created_at: str = ""

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> User:
        return cls(
            id=row["id"],
            email=row["email"],
            name=row["name"],
            role=row.get("role") or ROLE_ADMIN,
            created_at=iso(row.get("created_at")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "email": self.email, "name": self.name, "role": self.role}


@dataclass
class Category:
    id: str
    name: str
    icon: str
    description: str
    pattern_count: int = 0
    created_at: str = ""
    updated_at: str = ""

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> Category:
        return cls(
            id=row["id"],
            name=row["name"],
            icon=row["icon"],
            description=row["description"],
            pattern_count=int(row.get("pattern_count") or 0),
            created_at=iso(row["created_at"]),
            updated_at=iso(row["updated_at"]),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "icon": self.icon,
            "description": self.description,
            "patternCount": self.pattern_count,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


@dataclass
class Pattern:
    id: str
    category_id: str
    name: str
    icon: str
    description: str
    theory: str = ""  # markdown
    problem_count: int = 0
    created_at: str = ""
    updated_at: str = ""

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> Pattern:
        return cls(
            id=row["id"],
            category_id=row["category_id"],
            name=row["name"],
            icon=row["icon"],
            description=row["description"],
            theory=row.get("theory") or "",
            problem_count=int(row.get("problem_count") or 0),
            created_at=iso(row["created_at"]),
            updated_at=iso(row["updated_at"]),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "categoryId": self.category_id,
            "name": self.name,
            "icon": self.icon,
            "description": self.description,
            "theory": self.theory,
            "problemCount": self.problem_count,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


@dataclass
class Solution:
    id: str
    problem_id: str
    language: str  # cpp, go, python, java, javascript
    code: str
    created_at: str = ""
    updated_at: str = ""

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> Solution:
        return cls(
            id=row["id"],
            problem_id=row["problem_id"],
            language=row["language"],
            code=row["code"],
            created_at=iso(row["created_at"]),
            updated_at=iso(row["updated_at"]),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "problemId": self.problem_id,
            "language": self.language,
            "code": self.code,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


@dataclass
class Problem:
    id: str
    pattern_id: str
    title: str
    difficulty: str
    description: str = ""
    input: str = ""
    output: str = ""
    constraints: str = ""
    sample_input: str = ""
    sample_output: str = ""
    explanation: str = ""
    notes: str = ""
    solutions: list[Solution] = field(default_factory=list)
    created_at: str = ""
    updated_at: str = ""

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> Problem:
        return cls(
            id=row["id"],
            pattern_id=row["pattern_id"],
            title=row["title"],
            difficulty=row["difficulty"],
            created_at=iso(row["created_at"]),
            updated_at=iso(row["updated_at"]),
            **{f: row[f] or "" for f in PROBLEM_TEXT_FIELDS},
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "patternId": self.pattern_id,
            "title": self.title,
            "difficulty": self.difficulty,
        }
        for f in PROBLEM_TEXT_FIELDS:
            data[_camel(f)] = getattr(self, f)
        data["solutions"] = [s.to_dict() for s in self.solutions]
        data["createdAt"] = self.created_at
        data["updatedAt"] = self.updated_at
        return data


@dataclass
class LearningTopic:
    id: str
    name: str
    icon: str
    description: str
    slug: str
    created_at: str = ""
    updated_at: str = ""

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> LearningTopic:
        return cls(
            id=row["id"],
            name=row["name"],
            icon=row["icon"],
            description=row["description"],
            slug=row["slug"],
            created_at=iso(row["created_at"]),
            updated_at=iso(row["updated_at"]),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "icon": self.icon,
            "description": self.description,
            "slug": self.slug,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


@dataclass
class LearningResource:
    id: str
    topic_id: str
    title: str
    content: str  # markdown
    type: str  # article, video, link
    url: str = ""
    order_index: int = 0
    created_at: str = ""
    updated_at: str = ""

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> LearningResource:
        return cls(
            id=row["id"],
            topic_id=row["topic_id"],
            title=row["title"],
            content=row["content"],
            type=row["type"],
            url=row.get("url") or "",
            order_index=int(row.get("order_index") or 0),
            created_at=iso(row["created_at"]),
            updated_at=iso(row["updated_at"]),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "topicId": self.topic_id,
            "title": self.title,
            "content": self.content,
            "type": self.type,
            "url": self.url,
            "orderIndex": self.order_index,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


@dataclass
class RoadmapItem:
    id: str
    topic_id: str
    title: str
    description: str
    order_index: int = 0
    status: str = "todo"  # todo, in-progress, completed
    created_at: str = ""
    updated_at: str = ""

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> RoadmapItem:
        return cls(
            id=row["id"],
            topic_id=row["topic_id"],
            title=row["title"],
            description=row["description"],
            order_index=int(row.get("order_index") or 0),
            status=row.get("status") or "todo",
            created_at=iso(row["created_at"]),
            updated_at=iso(row["updated_at"]),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "topicId": self.topic_id,
            "title": self.title,
            "description": self.description,
            "orderIndex": self.order_index,
            "status": self.status,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
