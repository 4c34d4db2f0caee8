"""
Audit logging — records security-relevant events.

Events go to a dedicated ``audit`` logger so they can be routed separately.
"""

from __future__ import annotations

import logging

from flask import g, has_request_context, request

logger = logging.getLogger("audit")


def log_event(action: str, user_id: str | None = None, detail: str = "") -> None:
    """Emit a structured audit line for login, register and veto events."""
    ip = (request.remote_addr or "") if has_request_context() else ""
    request_id = getattr(g, "request_id", "-") if has_request_context() else "-"
    logger.info(
        "audit: %s user_id=%s detail=%s ip=%s",
        action, user_id, detail, ip,
        extra={"request_id": request_id},
    )
