"""
Tests: API key gate, rate limit wiring and structured log formatting.
"""

import json
import logging

import pytest

from techledger import create_app
from techledger.middleware.logging_config import JSONFormatter
from techledger.middleware.rate_limiter import API_BLUEPRINTS, init_rate_limits


@pytest.fixture()
def secured_client(monkeypatch):
    monkeypatch.setenv("API_AUTH_ENABLED", "true")
    monkeypatch.setenv("API_KEYS", "key-one,key-two")
    secured = create_app("testing")
    return secured.test_client()


class TestApiKeyGate:
    def test_missing_key_is_401(self, secured_client):
        res = secured_client.get("/api/v1/systems")
        assert res.status_code == 401
        assert res.get_json()["code"] == "ERR_UNAUTHORIZED"

    def test_wrong_key_is_401(self, secured_client):
        res = secured_client.get("/api/v1/systems", headers={"X-API-Key": "nope"})
        assert res.status_code == 401

    def test_valid_key_passes(self, secured_client):
        res = secured_client.get("/api/v1/systems", headers={"X-API-Key": "key-two"})
        assert res.status_code == 200

    def test_health_needs_no_key(self, secured_client):
        assert secured_client.get("/api/v1/health/ready").status_code == 200


class _RecordingLimiter:
    def __init__(self):
        self.limited = {}
        self.exempted = []

    def limit(self, value):
        def apply(bp):
            self.limited[bp.name] = value
            return bp
        return apply

    def exempt(self, bp):
        self.exempted.append(bp.name)


class TestRateLimits:
    def test_api_limit_covers_every_entity_blueprint(self, app):
        original = app.config["RATELIMIT_API"]
        app.config.update(TESTING=False, RATELIMIT_API="5/minute")
        recorder = _RecordingLimiter()
        try:
            init_rate_limits(app, recorder)
        finally:
            app.config.update(TESTING=True, RATELIMIT_API=original)
        assert set(API_BLUEPRINTS) <= set(app.blueprints)
        assert recorder.limited == {name: "5/minute" for name in API_BLUEPRINTS}
        assert recorder.exempted == ["health"]

    def test_disabled_while_testing(self, app):
        recorder = _RecordingLimiter()
        init_rate_limits(app, recorder)
        assert recorder.limited == {}
        assert recorder.exempted == []


class TestJSONFormatter:
    def test_domain_fields_are_emitted(self):
        record = logging.LogRecord(
            "techledger.services.link_service", logging.INFO, __file__, 10,
            "Link attached", None, None,
        )
        record.link_id = 7
        record.parent_kind = "task"
        record.unrelated = "dropped"

        entry = json.loads(JSONFormatter().format(record))
        assert entry["message"] == "Link attached"
        assert entry["level"] == "INFO"
        assert entry["link_id"] == 7
        assert entry["parent_kind"] == "task"
        assert "unrelated" not in entry
