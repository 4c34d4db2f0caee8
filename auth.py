"""
User Authentication — bearer tokens on top of Flask-Login.

Provides login, register and me routes. Tokens are HS256 JWTs carrying
``userID`` and ``role``; Flask-Login's request_loader turns the
``Authorization: Bearer`` header into ``current_user`` on every request.
Passwords use werkzeug.security hashing.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from flask import Blueprint, current_app, g, jsonify, request
from flask_login import LoginManager, UserMixin, current_user, login_required
from jose import JWTError, jwt
from werkzeug.security import check_password_hash

from audit import log_event
from database import NotFoundError, QueryError, get_db
from db_stores import DuplicateEmail, UserStoreDB, ValidationError
from extensions import limiter
from models import ROLE_ADMIN, ROLE_DEMO, ROLES

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/api")
login_manager = LoginManager()


class User(UserMixin):
    """The authenticated caller for this request."""

    def __init__(self, id: str, role: str = ROLE_ADMIN):
        self.id = id
        self.role = role

    @property
    def is_demo(self) -> bool:
        return self.role == ROLE_DEMO

    @property
    def can_write(self) -> bool:
        return not self.is_demo


def create_access_token(user_id: str, role: str) -> str:
    cfg = current_app.config
    expire = datetime.now(timezone.utc) + timedelta(days=cfg.get("JWT_EXPIRE_DAYS", 7))
    payload = {"userID": user_id, "role": role, "exp": expire}
    return jwt.encode(payload, cfg["JWT_SECRET"], algorithm=cfg.get("JWT_ALGORITHM", "HS256"))


def decode_access_token(token: str) -> dict[str, Any] | None:
    """Return the claims if signature and expiry check out, else None."""
    cfg = current_app.config
    try:
        return jwt.decode(token, cfg["JWT_SECRET"], algorithms=[cfg.get("JWT_ALGORITHM", "HS256")])
    except JWTError:
        return None


def resolve_role(claims: dict[str, Any], user_id: str) -> str | None:
    """Role from the token claim, else from the users table.

    None means the user no longer exists. If the lookup itself errors,
    ROLE_LOOKUP_FALLBACK applies.
    """
    role = claims.get("role")
    if role in ROLES:
        return role
    try:
        return UserStoreDB(get_db()).get_role(user_id)
    except NotFoundError:
        return None
    except QueryError:
        fallback = current_app.config.get("ROLE_LOOKUP_FALLBACK", ROLE_DEMO)
        logger.warning("Role lookup failed for %s; using %r", user_id, fallback)
        return fallback


@login_manager.request_loader
def load_user_from_request(req) -> User | None:
    header = req.headers.get("Authorization", "")
    if not header:
        g.auth_error = "Authorization header required"
        return None

    parts = header.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer":
        g.auth_error = "Invalid authorization header format"
        return None

    claims = decode_access_token(parts[1])
    if claims is None:
        g.auth_error = "Invalid or expired token"
        return None

    user_id = claims.get("userID")
    if not isinstance(user_id, str) or not user_id:
        g.auth_error = "Invalid user ID in token"
        return None

    role = resolve_role(claims, user_id)
    if role is None:
        g.auth_error = "Invalid or expired token"
        return None
    g.auth_user_id, g.auth_role = user_id, role
    return User(user_id, role)


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({"error": g.get("auth_error", "Authorization header required")}), 401


def _login_failure(reason: str, status: int = 401):
    if current_app.config.get("HIDE_LOGIN_FAILURE_REASON"):
        reason = "Invalid email or password."
    return jsonify({"error": reason}), status


@auth_bp.route("/login", methods=["POST"])
@limiter.limit("5 per 15 minutes")
def login():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid request body"}), 400

    email = data.get("email") or ""
    password = data.get("password") or ""
    if not isinstance(email, str) or not isinstance(password, str):
        return jsonify({"error": "Email and password must be strings"}), 400
    email = email.strip()
    if not email or not password:
        return jsonify({"error": "Email and password are required"}), 400

    row = UserStoreDB(get_db()).find_by_email(email)
    if row is None:
        log_event("login_unknown_email", None, f"email={email.lower()}")
        return _login_failure("User not found. Please check your email or register first.")

    if not row["password"] or not check_password_hash(row["password"], password):
        log_event("login_failed", row["id"])
        return _login_failure("Invalid password. Please check your password and try again.")

    role = row["role"] or ROLE_ADMIN
    log_event("login_success", row["id"], f"role={role}")
    return jsonify({
        "token": create_access_token(row["id"], role),
        "user": {"id": row["id"], "email": row["email"], "name": row["name"], "role": role},
    })


@auth_bp.route("/register", methods=["POST"])
@limiter.limit("3 per hour")
def register():
    if not current_app.config.get("REGISTRATION_ENABLED", True):
        return jsonify({"error": "Registration is disabled"}), 403

    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid request body"}), 400
    if any(not isinstance(data.get(k) or "", str) for k in ("email", "name", "password")):
        return jsonify({"error": "Email, password, and name must be strings"}), 400

    try:
        user = UserStoreDB(get_db()).create(
            data.get("email") or "", data.get("name") or "", data.get("password") or "",
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except DuplicateEmail:
        return jsonify({"error": "User with this email already exists"}), 409

    log_event("register", user.id, f"email={user.email}")
    return jsonify({"token": create_access_token(user.id, user.role), "user": user.to_dict()}), 201


@auth_bp.route("/me")
@login_required
def me():
    try:
        user = UserStoreDB(get_db()).get(current_user.id)
    except NotFoundError:
        return jsonify({"error": "Invalid or expired token"}), 401
    data = user.to_dict()
    data["role"] = current_user.role
    return jsonify(data)
