"""Tests for the structured JSON log format."""

from __future__ import annotations

import json
import logging

from sessionguard.core.logger import JSONFormatter


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("sessionguard.test", logging.WARNING, __file__, 1, "hello %s", ("x",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_auth_event_fields_are_emitted():
    line = JSONFormatter().format(
        _record(event="auth.reuse_detected", user_id="1", revoked_count=3, request_id="r-1")
    )
    payload = json.loads(line)
    assert payload["message"] == "hello x"
    assert payload["level"] == "WARNING"
    assert payload["event"] == "auth.reuse_detected"
    assert payload["user_id"] == "1"
    assert payload["revoked_count"] == 3
    assert payload["request_id"] == "r-1"


def test_unknown_extras_are_not_leaked():
    payload = json.loads(JSONFormatter().format(_record(password="secret")))
    assert "password" not in payload
