"""
Tests — application-level behaviour.

Covers:
    - Health endpoints (no token required)
    - JSON error bodies for unknown API paths and wrong Content-Type
    - Request-ID / duration headers
    - Auth-disabled mode acts as admin
    - Config selection
    - Log records stamped with request and user context
"""

import json
import logging

import pytest
from flask import g

from infosec_tools.config import ProductionConfig, _database_url
from infosec_tools.middleware.logging_config import JSONFormatter, ReadableFormatter, RequestContextFilter
from infosec_tools.models.audit import ActivityLog


class TestHealth:
    def test_health(self, client):
        res = client.get("/api/v1/health")
        assert res.status_code == 200
        assert res.get_json()["status"] == "ok"

    def test_live_checks_database(self, client):
        data = client.get("/api/v1/health/live").get_json()
        assert data["status"] == "ok"
        assert data["checks"]["database"]["status"] == "ok"
        assert data["checks"]["app"]["testing"] is True

    def test_ready(self, client):
        assert client.get("/api/v1/health/ready").status_code == 200


class TestErrorResponses:
    def test_unknown_api_path_is_json_404(self, client):
        res = client.get("/api/unknown")
        assert res.status_code == 404
        assert res.get_json()["code"] == "ERR_HTTP"

    def test_wrong_content_type(self, client, admin_headers):
        res = client.post("/api/v1/trackers", data="name=x", headers=admin_headers,
                          content_type="text/plain")
        assert res.status_code == 415
        assert "application/json" in res.get_json()["error"]

    def test_method_not_allowed(self, client, admin_headers):
        res = client.patch("/api/v1/trackers", json={}, headers=admin_headers)
        assert res.status_code == 405
        assert res.get_json()["code"] == "ERR_HTTP"

    def test_root_without_frontend_build(self, client):
        assert client.get("/").status_code == 404


class TestRequestHeaders:
    def test_request_id_generated(self, client):
        res = client.get("/api/v1/health")
        assert res.headers["X-Request-ID"]
        assert float(res.headers["X-Request-Duration-Ms"]) >= 0

    def test_request_id_propagated(self, client):
        res = client.get("/api/v1/health", headers={"X-Request-ID": "abc123"})
        assert res.headers["X-Request-ID"] == "abc123"


class TestAuthDisabled:
    def test_requests_act_as_admin(self, client, monkeypatch):
        monkeypatch.setenv("API_AUTH_ENABLED", "false")
        res = client.post("/api/v1/trackers", json={"name": "Open mode"})
        assert res.status_code == 201
        assert ActivityLog.query.one().user_id is None


class TestConfig:
    def test_postgres_scheme_rewritten(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgres://u:p@db/infosec")
        assert _database_url("sqlite://") == "postgresql://u:p@db/infosec"

    def test_production_requires_secrets(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        monkeypatch.delenv("SECRET_KEY", raising=False)
        with pytest.raises(RuntimeError):
            ProductionConfig()


def _record(msg="Tracker %s import: %d success, %d failed", args=(7, 3, 1), **extra):
    record = logging.LogRecord("infosec_tools.services.tracker_service", logging.INFO, __file__, 1, msg, args, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestLogging:
    def test_filter_stamps_request_and_user(self, app, admin_user):
        with app.test_request_context("/api/v1/trackers/7/import", method="POST"):
            g.request_id = "req-1"
            g.current_user = admin_user
            g.current_user_role = admin_user.role
            record = _record()
            assert RequestContextFilter().filter(record) is True

        assert record.request_id == "req-1"
        assert record.user_id == admin_user.id
        assert record.username == "admin"
        assert record.role == "admin"
        assert (record.method, record.path) == ("POST", "/api/v1/trackers/7/import")

    def test_filter_keeps_explicit_extra(self, app):
        with app.test_request_context("/api/v1/servers"):
            g.request_id = "req-2"
            record = _record(path="/custom")
            RequestContextFilter().filter(record)
        assert record.path == "/custom"
        assert record.user_id is None

    def test_filter_outside_request(self):
        record = _record()
        assert RequestContextFilter().filter(record) is True
        assert not hasattr(record, "request_id")

    def test_json_line_carries_import_counters(self):
        record = _record(request_id="req-3", user_id=1, role="admin", resource="trackers",
                         tracker_id=7, rows_imported=3, rows_failed=1)
        entry = json.loads(JSONFormatter().format(record))
        assert entry["message"] == "Tracker 7 import: 3 success, 1 failed"
        assert entry["rows_imported"] == 3
        assert entry["rows_failed"] == 1
        assert entry["tracker_id"] == 7
        assert entry["user_id"] == 1
        assert "rows_exported" not in entry
        assert "location" not in entry

    def test_readable_line_shows_request_and_user(self):
        record = _record(request_id="req-4", username="admin", role="admin")
        line = ReadableFormatter(use_color=False).format(record)
        assert "[req-4 admin@admin]" in line
        assert line.endswith("Tracker 7 import: 3 success, 1 failed")
