"""Bulk import and bulk clear of catalogue data."""

from __future__ import annotations

from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from audit import log_event
from database import get_db
from db_stores import CatalogueImporter
from helpers import json_body, writes_allowed

bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@bp.route("/import", methods=["POST"])
@login_required
@writes_allowed("import bulk data")
def bulk_import():
    stats = CatalogueImporter(get_db()).import_structure(json_body())
    log_event("bulk_import", current_user.id, str(stats))
    return jsonify({"message": "Bulk import completed successfully", "stats": stats})


@bp.route("/data", methods=["DELETE"])
@login_required
@writes_allowed("clear data")
def clear_data():
    CatalogueImporter(get_db()).clear_all()
    log_event("bulk_clear", current_user.id)
    return jsonify({"message": "All data cleared successfully"})
