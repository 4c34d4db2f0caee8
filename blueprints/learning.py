"""Read-only learning topic, resource and roadmap routes."""

from __future__ import annotations

from flask import Blueprint, jsonify
from flask_login import login_required

from database import get_db
from db_stores import LearningStoreDB

bp = Blueprint("learning", __name__, url_prefix="/api/learning")


@bp.route("/topics")
@login_required
def list_topics():
    return jsonify([t.to_dict() for t in LearningStoreDB(get_db()).list_topics()])


@bp.route("/topics/<slug>")
@login_required
def get_topic(slug):
    return jsonify(LearningStoreDB(get_db()).get_topic_by_slug(slug).to_dict())


@bp.route("/topics/<topic_id>/resources")
@login_required
def list_resources(topic_id):
    return jsonify([r.to_dict() for r in LearningStoreDB(get_db()).list_resources(topic_id)])


@bp.route("/topics/<topic_id>/roadmap")
@login_required
def roadmap(topic_id):
    return jsonify([i.to_dict() for i in LearningStoreDB(get_db()).roadmap(topic_id)])
