import json
import logging
import sys

from wod_gateway.logger import JsonFormatter, setup_logging


def _record(msg, *args, exc_info=None):
    return logging.LogRecord("wod_gateway.test", logging.WARNING, __file__, 1, msg, args, exc_info)


def test_json_formatter_fields():
    line = JsonFormatter().format(_record("Quota reached for %s", "user-1"))
    data = json.loads(line)
    assert data["level"] == "warning"
    assert data["logger"] == "wod_gateway.test"
    assert data["message"] == "Quota reached for user-1"
    assert data["ts"].endswith("+00:00")
    assert "exc" not in data


def test_json_formatter_keeps_unicode_and_exceptions():
    try:
        raise ValueError("bad")
    except ValueError:
        record = _record("Übung fehlgeschlagen", exc_info=sys.exc_info())
    line = JsonFormatter().format(record)
    assert "Übung" in line
    assert "ValueError: bad" in json.loads(line)["exc"]


def test_json_formatter_adds_request_context():
    record = _record("Quota reached (5/5)")
    record.user_id = "user-9"
    record.tier = "free"
    record.action = None

    data = json.loads(JsonFormatter().format(record))

    assert data["user_id"] == "user-9"
    assert data["tier"] == "free"
    assert "action" not in data


def test_setup_logging_accepts_level_names(monkeypatch):
    seen = {}
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: seen.update(kwargs))

    setup_logging("debug")
    assert seen["level"] == logging.DEBUG

    setup_logging("chatty")
    assert seen["level"] == logging.INFO
    assert isinstance(seen["handlers"][0].formatter, JsonFormatter)
