#!/usr/bin/env python3
"""
Tests for core/logger_factory.py

Tests JSONL formatting, logger caching and gzip rotation.
"""

import gzip
import json
import logging

import pytest

import config
from core import logger_factory
from core.logger_factory import (
    GzTimedHandler,
    JsonlFormatter,
    close_loggers,
    get_logger,
    HEALTH_LOG,
    log_event,
    session_id_var,
)


@pytest.fixture(autouse=True)
def clean_loggers():
    yield
    close_loggers()
    config.clear_config_overrides()


def make_record(**extra):
    record = logging.LogRecord("health", logging.INFO, __file__, 1, "hello", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJsonlFormatter:
    """Test JsonlFormatter output"""

    def test_mandatory_fields(self):
        payload = json.loads(JsonlFormatter().format(make_record(event="memory_snapshot")))

        assert payload["level"] == "INFO"
        assert payload["component"] == "health"
        assert payload["event"] == "memory_snapshot"
        assert payload["message"] == "hello"
        assert isinstance(payload["ts_ns"], int)

    def test_extra_fields_and_none_dropped(self):
        record = make_record(extra_fields={"committed": 10, "free": None})

        payload = json.loads(JsonlFormatter().format(record))

        assert payload["committed"] == 10
        assert "free" not in payload
        assert "event" not in payload

    def test_session_id(self):
        token = session_id_var.set("sess_1")
        try:
            payload = json.loads(JsonlFormatter().format(make_record()))
        finally:
            session_id_var.reset(token)

        assert payload["session_id"] == "sess_1"


class TestGetLogger:
    """Test logger creation and caching"""

    def test_cached(self, tmp_path):
        path = str(tmp_path / "a" / "log.jsonl")

        assert get_logger("cache_test", path) is get_logger("cache_test", path)
        assert (tmp_path / "a").is_dir()

    def test_health_log_uses_config_path(self, tmp_path):
        path = tmp_path / "health.jsonl"
        config.set_config_override("HEALTH_LOG_FILE", str(path))

        log_event(HEALTH_LOG(), "heartbeat", uptime_s=5)

        event = json.loads(path.read_text(encoding="utf-8").splitlines()[0])
        assert event["event"] == "heartbeat"
        assert event["uptime_s"] == 5

    def test_session_id_in_file(self, tmp_path):
        path = tmp_path / "s.jsonl"
        logger = get_logger("session_test", str(path))

        token = session_id_var.set("run_42")
        try:
            log_event(logger, "probe_ready")
        finally:
            session_id_var.reset(token)

        event = json.loads(path.read_text(encoding="utf-8").splitlines()[0])
        assert event["session_id"] == "run_42"
        assert event["message"] == "probe_ready"

    def test_path_change_replaces_handler(self, tmp_path):
        """Test a logger never writes to two files after its path changes"""
        first = tmp_path / "first.jsonl"
        second = tmp_path / "second.jsonl"

        log_event(get_logger("moving_test", str(first)), "before")
        logger = get_logger("moving_test", str(second))
        log_event(logger, "after")

        handlers = [h for h in logger.handlers if isinstance(h, GzTimedHandler)]
        assert len(handlers) == 1
        first_events = [json.loads(line)["event"] for line in first.read_text(encoding="utf-8").splitlines()]
        second_events = [json.loads(line)["event"] for line in second.read_text(encoding="utf-8").splitlines()]
        assert first_events == ["before"]
        assert second_events == ["after"]

    def test_health_log_follows_config_change(self, tmp_path):
        config.set_config_override("HEALTH_LOG_FILE", str(tmp_path / "a.jsonl"))
        log_event(HEALTH_LOG(), "heartbeat")

        config.set_config_override("HEALTH_LOG_FILE", str(tmp_path / "b.jsonl"))
        log_event(HEALTH_LOG(), "heartbeat")

        assert len((tmp_path / "a.jsonl").read_text(encoding="utf-8").splitlines()) == 1
        assert len((tmp_path / "b.jsonl").read_text(encoding="utf-8").splitlines()) == 1

    def test_close_loggers(self, tmp_path):
        logger = get_logger("close_test", str(tmp_path / "c.jsonl"))

        close_loggers()

        assert not any(isinstance(h, GzTimedHandler) for h in logger.handlers)
        assert logger_factory._logger_cache == {}


class TestGzTimedHandler:
    """Test gzip rotation"""

    def test_rotate_compresses(self, tmp_path):
        source = tmp_path / "health.jsonl"
        source.write_text('{"event": "x"}\n', encoding="utf-8")
        handler = GzTimedHandler(str(tmp_path / "other.jsonl"), when="midnight", utc=True)

        try:
            dest = handler.rotation_filename(str(tmp_path / "health.jsonl.1"))
            handler.rotate(str(source), dest)
        finally:
            handler.close()

        assert dest.endswith(".gz")
        assert not source.exists()
        with gzip.open(dest, "rt", encoding="utf-8") as f:
            assert f.read() == '{"event": "x"}\n'
