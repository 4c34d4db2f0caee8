"""Tests for logging_config.py — request context on log records and access lines."""

import json
import logging

from logging_config import JSONFormatter, RequestContextFilter, access_line


def _access_records(caplog):
    return [r for r in caplog.records if r.name == "access"]


class TestAccessLog:
    def test_authenticated_request_carries_user_and_role(self, client, admin_user, admin_headers, caplog):
        caplog.set_level(logging.INFO, logger="access")
        client.get("/api/categories", headers=admin_headers)
        record = _access_records(caplog)[-1]
        assert record.getMessage().startswith("GET /api/categories 200 ")
        assert record.user_id == admin_user.id
        assert record.role == "admin"
        assert len(record.request_id) == 12

    def test_anonymous_request(self, client, caplog):
        caplog.set_level(logging.INFO, logger="access")
        client.get("/health")
        record = _access_records(caplog)[-1]
        assert record.user_id == "-"
        assert record.role == "-"

    def test_demo_role_logged(self, client, demo_headers, caplog):
        caplog.set_level(logging.INFO, logger="access")
        client.post("/api/categories", json={"name": "X"}, headers=demo_headers)
        record = _access_records(caplog)[-1]
        assert " 403 " in record.getMessage()
        assert record.role == "demo"

    def test_access_line_format(self):
        assert access_line("PUT", "/api/patterns/p1", 404, 12.6) == "PUT /api/patterns/p1 404 13ms"


class TestFormatting:
    def _record(self, **extra):
        record = logging.LogRecord("algovault", logging.INFO, __file__, 1, "hello %s", ("world",), None)
        for k, v in extra.items():
            setattr(record, k, v)
        return record

    def test_filter_fills_defaults_outside_requests(self):
        record = self._record()
        assert RequestContextFilter().filter(record)
        assert (record.request_id, record.user_id, record.role) == ("-", "-", "-")

    def test_filter_keeps_explicit_values(self):
        record = self._record(request_id="abc")
        RequestContextFilter().filter(record)
        assert record.request_id == "abc"

    def test_json_formatter_skips_empty_context(self):
        record = self._record(request_id="abc", user_id="-", role="admin")
        entry = json.loads(JSONFormatter().format(record))
        assert entry["message"] == "hello world"
        assert entry["request_id"] == "abc"
        assert entry["role"] == "admin"
        assert "user_id" not in entry
