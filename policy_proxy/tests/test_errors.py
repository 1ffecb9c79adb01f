from __future__ import annotations

import logging

from fastapi.testclient import TestClient

from policy_proxy.app.core.errors import ProxyError, ValidationFailed, error_body, ok_body
from policy_proxy.app.core.logging import JsonLineFormatter, setup_logging


def test_error_body_shape():
    assert error_body("VALIDATION", "bad", 422) == {
        "ok": False,
        "code": "VALIDATION",
        "message": "bad",
        "meta": {"status": 422},
    }
    assert ok_body(a=1) == {"ok": True, "a": 1}


def test_validation_failed_defaults():
    err = ValidationFailed("No items provided")
    assert isinstance(err, ProxyError)
    assert (err.code, err.status, str(err)) == ("VALIDATION", 422, "No items provided")


def test_unhandled_errors_become_json(make_app):
    app = make_app()

    @app.get("/boom")
    def boom():
        raise RuntimeError("kaboom")

    client = TestClient(app, raise_server_exceptions=False)
    r = client.get("/boom")
    assert r.status_code == 500
    body = r.json()
    assert body["ok"] is False
    assert body["code"] == "INTERNAL"
    assert body["message"] == "kaboom"
    assert body["meta"]["status"] == 500
    assert body["meta"]["method"] == "GET"


def test_custom_proxy_error_status(make_app):
    app = make_app()

    @app.get("/teapot")
    def teapot():
        raise ProxyError("short and stout", code="TEAPOT", status=418)

    r = TestClient(app).get("/teapot")
    assert r.status_code == 418
    assert r.json() == error_body("TEAPOT", "short and stout", 418)


def test_json_log_lines():
    record = logging.LogRecord("policy_proxy", logging.INFO, __file__, 1, 'say "hi"', None, None)
    line = JsonLineFormatter().format(record)
    assert '"msg": "say \\"hi\\""' in line
    assert '"level": "INFO"' in line


def test_setup_logging_replaces_own_handler_only():
    root = logging.getLogger()
    foreign = logging.NullHandler()
    root.addHandler(foreign)
    try:
        first = setup_logging("debug", "json")
        second = setup_logging("info", "text")
        assert first not in root.handlers
        assert second in root.handlers
        assert foreign in root.handlers
        assert root.level == logging.INFO
    finally:
        root.removeHandler(foreign)
