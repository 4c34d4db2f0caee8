"""
Blueprint registration for AlgoVault.

Each blueprint carries its own /api prefix on its routes.
"""

from __future__ import annotations


def register_blueprints(app):
    from blueprints.catalogue import bp as catalogue_bp
    from blueprints.learning import bp as learning_bp
    from blueprints.admin import bp as admin_bp

    app.register_blueprint(catalogue_bp)
    app.register_blueprint(learning_bp)
    app.register_blueprint(admin_bp)
