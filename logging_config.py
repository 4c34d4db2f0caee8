"""
Structured logging configuration.

- JSON lines in production, plain text in development
- Every record carries the request id and, once the bearer token has been
  resolved, the caller's user id and role
- One access line per request, written to the ``access`` logger
"""

from __future__ import annotations

import json
import logging
import time
import uuid

from flask import Flask, g, has_request_context, request

access_logger = logging.getLogger("access")

CONTEXT_FIELDS = ("request_id", "user_id", "role")


class RequestContextFilter(logging.Filter):
    """Stamp request id, user id and role onto records emitted during a request."""

    def filter(self, record: logging.LogRecord) -> bool:
        in_request = has_request_context()
        defaults = {
            "request_id": g.get("request_id", "-") if in_request else "-",
            "user_id": g.get("auth_user_id", "-") if in_request else "-",
            "role": g.get("auth_role", "-") if in_request else "-",
        }
        for name, value in defaults.items():
            if not hasattr(record, name):
                setattr(record, name, value)
        return True


class JSONFormatter(logging.Formatter):
    """Emit log records as single-line JSON."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in CONTEXT_FIELDS:
            value = getattr(record, name, "-")
            if value != "-":
                entry[name] = value
        if record.exc_info and record.exc_info[0]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def configure_root(log_format: str = "text", log_level: str = "INFO") -> None:
    """Install a single stream handler on the root logger."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    root.handlers.clear()

    handler = logging.StreamHandler()
    handler.addFilter(RequestContextFilter())
    if log_format == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s [%(request_id)s %(user_id)s/%(role)s]: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
    root.addHandler(handler)

    logging.getLogger("werkzeug").setLevel(logging.WARNING)
    logging.getLogger("psycopg.pool").setLevel(logging.WARNING)


def access_line(method: str, path: str, status: int, duration_ms: float) -> str:
    return f"{method} {path} {status} {duration_ms:.0f}ms"


def init_logging(app: Flask) -> None:
    """Configure logging from app config and hook the request lifecycle."""
    if not app.config.get("TESTING"):
        configure_root(app.config.get("LOG_FORMAT", "text"), app.config.get("LOG_LEVEL", "INFO"))

    @app.before_request
    def _attach_request_id():
        g.request_id = uuid.uuid4().hex[:12]
        g.request_start = time.perf_counter()

    @app.after_request
    def _log_request(response):
        duration_ms = (time.perf_counter() - g.get("request_start", time.perf_counter())) * 1000
        access_logger.info(
            access_line(request.method, request.path, response.status_code, duration_ms),
            extra={
                "request_id": g.get("request_id", "-"),
                "user_id": g.get("auth_user_id", "-"),
                "role": g.get("auth_role", "-"),
            },
        )
        return response
