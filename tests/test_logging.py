import json
import logging

from vibeflow.core.logging import (
    JsonFormatter,
    clear_correlation_id,
    get_logger,
    set_correlation_id,
)


def _record(msg, args=None, level=logging.INFO):
    return logging.LogRecord("vibeflow.test", level, __file__, 1, msg, (args,) if args else None, None)


def test_formatter_emits_json_with_fields_and_correlation_id():
    set_correlation_id("cid-1")
    try:
        line = JsonFormatter().format(_record("spotify.request_rejected", {"path": "/search", "status_code": 502}))
    finally:
        clear_correlation_id()

    entry = json.loads(line)
    assert entry["event"] == "spotify.request_rejected"
    assert entry["level"] == "INFO"
    assert entry["correlation_id"] == "cid-1"
    assert entry["status_code"] == 502
    assert entry["service"] == "vibeflow-api"


def test_formatter_redacts_secrets():
    entry = json.loads(JsonFormatter().format(_record("auth.debug", {"access_token": "BQD", "code": "c", "ok": 1})))
    assert entry["access_token"] == "***"
    assert entry["code"] == "***"
    assert entry["ok"] == 1


def test_set_correlation_id_generates_when_missing():
    cid = set_correlation_id(None)
    clear_correlation_id()
    assert len(cid) == 36


def test_loggers_live_under_package_namespace():
    assert get_logger("auth").name == "vibeflow.auth"
    assert get_logger("vibeflow.x").name == "vibeflow.x"
