"""Tests for the JSON log formatter and configure_logging()."""

from __future__ import annotations

import json
import logging

import pytest

from interview_recommender.config import LoggingConfig
from interview_recommender.utils.logging import _JsonFormatter, configure_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        "interview_recommender.engine", logging.WARNING, __file__, 1,
        "Audit log write failed for user %s", (42,), None,
    )
    record.__dict__.update(extra)
    return record


class TestJsonFormatter:
    def test_core_fields_and_extras(self):
        payload = json.loads(_JsonFormatter().format(_record(user_id=42, store="database")))

        assert payload["level"] == "WARNING"
        assert payload["logger"] == "interview_recommender.engine"
        assert payload["msg"] == "Audit log write failed for user 42"
        assert payload["user_id"] == 42
        assert payload["store"] == "database"
        assert payload["ts"].endswith("Z")

    def test_standard_attributes_not_leaked(self):
        payload = json.loads(_JsonFormatter().format(_record()))
        assert "args" not in payload
        assert "lineno" not in payload


class TestConfigureLogging:
    def test_file_handler_and_level(self, tmp_path, restore_root_logger):
        log_file = tmp_path / "logs" / "recs.log"
        configure_logging(LoggingConfig(level="debug", log_file=str(log_file), json_format=True))

        logging.getLogger("interview_recommender.test").info("hello", extra={"user_id": 7})
        for handler in restore_root_logger.handlers:
            handler.flush()

        assert restore_root_logger.level == logging.DEBUG
        line = log_file.read_text(encoding="utf-8").strip().splitlines()[-1]
        assert json.loads(line)["user_id"] == 7

    def test_no_log_file(self, restore_root_logger):
        configure_logging(LoggingConfig(level="WARNING", log_file=""))
        assert not any(isinstance(h, logging.FileHandler) for h in restore_root_logger.handlers)
