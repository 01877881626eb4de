"""
Unit tests for the log formatters and handler configuration.

Tests cover:
- JSONFormatter: core keys, ``extra=`` fields, exceptions
- ConsoleFormatter: request-id scope, colour toggle
- The dictConfig payload: sinks, levels, DEBUG switching SQL echo on
"""

import json
import logging
import sys

from fundscreener.core import logging as log_config
from fundscreener.core.logging import ConsoleFormatter, JSONFormatter


def _record(msg="Listed %d of %d funds", args=(20, 134), level=logging.INFO, **extra):
    record = logging.makeLogRecord(
        {
            "name": "fundscreener.services.mutual_fund_service",
            "levelno": level,
            "levelname": logging.getLevelName(level),
            "msg": msg,
            "args": args,
            "module": "mutual_fund_service",
            "funcName": "list_funds",
            "lineno": 88,
        }
    )
    record.__dict__.update(extra)
    return record


class TestJSONFormatter:
    def test_core_keys(self):
        payload = json.loads(JSONFormatter().format(_record()))
        assert payload["level"] == "INFO"
        assert payload["logger"] == "fundscreener.services.mutual_fund_service"
        assert payload["msg"] == "Listed 20 of 134 funds"
        assert payload["where"] == "mutual_fund_service.list_funds:88"
        assert payload["ts"].endswith("+00:00")

    def test_extra_fields_merged(self):
        filters = {"category": ["Equity"], "min_rating": 4}
        payload = json.loads(
            JSONFormatter().format(_record(request_id="abc-123", total=134, filters=filters))
        )
        assert payload["request_id"] == "abc-123"
        assert payload["total"] == 134
        assert payload["filters"] == filters

    def test_standard_attributes_not_duplicated(self):
        payload = json.loads(JSONFormatter().format(_record()))
        for attr in ("args", "levelno", "pathname", "created", "msecs", "exc_info"):
            assert attr not in payload

    def test_exception_included(self):
        try:
            raise ConnectionError("database down")
        except ConnectionError:
            record = _record(msg="boom", args=(), level=logging.ERROR)
            record.exc_info = sys.exc_info()

        payload = json.loads(JSONFormatter().format(record))
        assert "ConnectionError: database down" in payload["exc"]

    def test_unserialisable_extra_uses_str(self):
        payload = json.loads(JSONFormatter().format(_record(when=object)))
        assert payload["when"] == str(object)


class TestConsoleFormatter:
    def test_plain_line(self):
        line = ConsoleFormatter().format(_record())
        assert "INFO" in line
        assert line.endswith(
            "fundscreener.services.mutual_fund_service: Listed 20 of 134 funds"
        )
        assert "\033[" not in line

    def test_request_id_shortened(self):
        line = ConsoleFormatter().format(_record(request_id="0123456789abcdef"))
        assert "mutual_fund_service [01234567]:" in line

    def test_colour(self):
        line = ConsoleFormatter(colour=True).format(_record(level=logging.WARNING))
        assert "\033[33m" in line
        assert "\033[0m" in line


class TestLoggingConfig:
    def test_sinks(self):
        config = log_config._logging_config("INFO")
        assert config["root"]["handlers"] == ["console", "file", "errors"]
        assert config["handlers"]["errors"]["level"] == "ERROR"
        assert config["handlers"]["file"]["filename"].endswith(log_config.LOG_FILE)
        assert config["handlers"]["file"]["formatter"] == "json"

    def test_sql_echo_follows_debug(self, monkeypatch):
        monkeypatch.setattr(log_config.settings, "DEBUG", False)
        assert log_config._logging_config("INFO")["loggers"]["sqlalchemy.engine"]["level"] == "WARNING"

        monkeypatch.setattr(log_config.settings, "DEBUG", True)
        assert log_config._logging_config("DEBUG")["loggers"]["sqlalchemy.engine"]["level"] == "DEBUG"

    def test_setup_is_noop_when_configured(self, monkeypatch):
        calls = []
        monkeypatch.setattr(log_config.logging.config, "dictConfig", calls.append)

        root = logging.getLogger()
        handler = logging.NullHandler()
        root.addHandler(handler)
        try:
            log_config.setup_logging()
        finally:
            root.removeHandler(handler)

        assert calls == []
