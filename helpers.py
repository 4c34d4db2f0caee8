"""Shared request helpers and the demo-role write guard used across blueprints."""

from __future__ import annotations

from collections.abc import Callable
from functools import wraps
from typing import Any

from flask import jsonify, request
from flask_login import current_user

from audit import log_event
from db_stores import ValidationError


def writes_allowed(action: str) -> Callable:
    """Reject the read-only demo role before a mutating handler runs.

    Stack it under @login_required on every create/update/delete route.
    """
    def decorator(f: Callable) -> Callable:
        @wraps(f)
        def decorated(*args: Any, **kwargs: Any) -> Any:
            if not getattr(current_user, "can_write", False):
                log_event("demo_write_blocked", getattr(current_user, "id", None), action)
                return jsonify({"error": f"Demo users cannot {action}"}), 403
            return f(*args, **kwargs)
        decorated.mutating = True
        return decorated
    return decorator


def json_body() -> dict[str, Any]:
    """The request's JSON object, or ValidationError (mapped to 400)."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Invalid request body")
    return data


def problem_payload(data: dict[str, Any]) -> dict[str, Any]:
    """camelCase problem body -> snake_case store fields."""
    return {
        "title": data.get("title"),
        "difficulty": data.get("difficulty"),
        "description": data.get("description"),
        "input": data.get("input"),
        "output": data.get("output"),
        "constraints": data.get("constraints"),
        "sample_input": data.get("sampleInput"),
        "sample_output": data.get("sampleOutput"),
        "explanation": data.get("explanation"),
        "notes": data.get("notes"),
    }


def solutions_payload(data: dict[str, Any]) -> list[dict[str, Any]] | None:
    solutions = data.get("solutions")
    if solutions is None:
        return None
    if not isinstance(solutions, list) or not all(isinstance(s, dict) for s in solutions):
        raise ValidationError("solutions must be a list of {language, code} objects")
    return solutions
