"""
AlgoVault — Flask Web Application

JSON API over a catalogue of algorithm categories, patterns, problems and
per-language solutions, plus a read-only learning hierarchy.
"""

from __future__ import annotations

import os
from typing import Any

from dotenv import load_dotenv
from flask import Flask, Response, jsonify

import database
from auth import auth_bp, login_manager
from blueprints import register_blueprints
from database import DatabaseNotReady, NotFoundError, QueryError
from db_stores import ValidationError
from extensions import limiter


def create_app(test_config: dict[str, Any] | None = None) -> Flask:
    app = Flask(__name__)

    # Load config
    from config import config_by_name
    if test_config is not None:
        app.config.from_object(config_by_name["testing"])
        app.config.update(test_config)
    else:
        env = os.environ.get("FLASK_ENV", "development")
        cfg = config_by_name.get(env, config_by_name["development"])
        app.config.from_object(cfg)
        if hasattr(cfg, "validate"):
            cfg.validate()

    app.secret_key = app.config.get("SECRET_KEY", "dev-key-change-in-production")

    # Structured logging
    from logging_config import init_logging
    init_logging(app)

    # Readiness gate + schema initialisation
    database.init_app(app)

    # Rate limiter (disabled in testing)
    limiter.init_app(app)
    if app.config.get("TESTING"):
        limiter.enabled = False

    # Register auth blueprint and login manager
    app.register_blueprint(auth_bp)
    login_manager.init_app(app)

    # Register all application blueprints
    register_blueprints(app)

    @app.route("/health")
    def health():
        return "OK", 200

    @app.errorhandler(NotFoundError)
    def handle_not_found(e: NotFoundError):
        return jsonify({"error": str(e)}), 404

    @app.errorhandler(ValidationError)
    def handle_validation(e: ValidationError):
        return jsonify({"error": str(e)}), 400

    @app.errorhandler(QueryError)
    def handle_query_error(e: QueryError):
        # Driver details were already logged by Database._run
        return jsonify({"error": "Database error"}), 500

    @app.errorhandler(DatabaseNotReady)
    def handle_not_ready(e: DatabaseNotReady):
        return jsonify({"error": str(e)}), 503

    @app.after_request
    def set_security_headers(response: Response) -> Response:
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "no-referrer"
        return response

    return app


if __name__ == "__main__":
    load_dotenv()
    application = create_app()
    application.run(host="0.0.0.0", port=application.config.get("PORT", 8080))
