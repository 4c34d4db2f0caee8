"""Category, pattern, problem and solution routes."""

from __future__ import annotations

from flask import Blueprint, jsonify
from flask_login import login_required

from database import get_db
from db_stores import CategoryStoreDB, PatternStoreDB, ProblemStoreDB, SolutionStoreDB, ValidationError
from helpers import json_body, problem_payload, solutions_payload, writes_allowed

bp = Blueprint("catalogue", __name__, url_prefix="/api")


# ── Categories ───────────────────────────────────────────────

@bp.route("/categories")
@login_required
def list_categories():
    return jsonify([c.to_dict() for c in CategoryStoreDB(get_db()).list()])


@bp.route("/categories", methods=["POST"])
@login_required
@writes_allowed("create categories")
def create_category():
    data = json_body()
    cat = CategoryStoreDB(get_db()).create(
        data.get("name"), data.get("icon"), data.get("description"),
    )
    return jsonify(cat.to_dict()), 201


@bp.route("/categories/<category_id>", methods=["PUT"])
@login_required
@writes_allowed("update categories")
def update_category(category_id):
    data = json_body()
    cat = CategoryStoreDB(get_db()).update(
        category_id, data.get("name"), data.get("icon"), data.get("description"),
    )
    return jsonify(cat.to_dict())


@bp.route("/categories/<category_id>", methods=["DELETE"])
@login_required
@writes_allowed("delete categories")
def delete_category(category_id):
    CategoryStoreDB(get_db()).delete(category_id)
    return jsonify({"message": "Category deleted"})


# ── Patterns ─────────────────────────────────────────────────

@bp.route("/categories/<category_id>/patterns")
@login_required
def list_patterns(category_id):
    return jsonify([p.to_dict() for p in PatternStoreDB(get_db()).list(category_id)])


@bp.route("/categories/<category_id>/patterns", methods=["POST"])
@login_required
@writes_allowed("create patterns")
def create_pattern(category_id):
    data = json_body()
    pat = PatternStoreDB(get_db()).create(
        category_id, data.get("name"), data.get("icon"),
        data.get("description"), data.get("theory"),
    )
    return jsonify(pat.to_dict()), 201


@bp.route("/patterns/<pattern_id>", methods=["PUT"])
@login_required
@writes_allowed("update patterns")
def update_pattern(pattern_id):
    data = json_body()
    pat = PatternStoreDB(get_db()).update(
        pattern_id, data.get("name"), data.get("icon"),
        data.get("description"), data.get("theory"),
    )
    return jsonify(pat.to_dict())


@bp.route("/patterns/<pattern_id>/theory", methods=["PUT"])
@login_required
@writes_allowed("update pattern theory")
def update_pattern_theory(pattern_id):
    data = json_body()
    PatternStoreDB(get_db()).update_theory(pattern_id, data.get("theory"))
    return jsonify({"message": "Pattern theory updated"})


@bp.route("/patterns/<pattern_id>", methods=["DELETE"])
@login_required
@writes_allowed("delete patterns")
def delete_pattern(pattern_id):
    PatternStoreDB(get_db()).delete(pattern_id)
    return jsonify({"message": "Pattern deleted"})


# ── Problems ─────────────────────────────────────────────────

@bp.route("/patterns/<pattern_id>/problems")
@login_required
def list_problems(pattern_id):
    return jsonify([p.to_dict() for p in ProblemStoreDB(get_db()).list(pattern_id)])


@bp.route("/problems/<problem_id>")
@login_required
def get_problem(problem_id):
    return jsonify(ProblemStoreDB(get_db()).get(problem_id).to_dict())


@bp.route("/patterns/<pattern_id>/problems", methods=["POST"])
@login_required
@writes_allowed("create problems")
def create_problem(pattern_id):
    data = json_body()
    prob = ProblemStoreDB(get_db()).create(
        pattern_id, problem_payload(data), solutions_payload(data) or [],
    )
    return jsonify(prob.to_dict()), 201


@bp.route("/problems/<problem_id>", methods=["PUT"])
@login_required
@writes_allowed("update problems")
def update_problem(problem_id):
    data = json_body()
    prob = ProblemStoreDB(get_db()).update(
        problem_id, problem_payload(data), solutions_payload(data),
    )
    return jsonify(prob.to_dict())


@bp.route("/problems/<problem_id>", methods=["DELETE"])
@login_required
@writes_allowed("delete problems")
def delete_problem(problem_id):
    ProblemStoreDB(get_db()).delete(problem_id)
    return jsonify({"message": "Problem deleted"})


@bp.route("/problems/<problem_id>/solutions", methods=["PUT"])
@login_required
@writes_allowed("save solutions")
def save_solutions(problem_id):
    solutions = solutions_payload(json_body())
    if solutions is None:
        raise ValidationError("solutions is required")
    db = get_db()
    ProblemStoreDB(db).get(problem_id)
    SolutionStoreDB(db).save_all(problem_id, solutions)
    return jsonify([s.to_dict() for s in SolutionStoreDB(db).list(problem_id)])
