#!/usr/bin/env python3
"""
Unit Tests for Logging Configuration
Tests for sharegate/core/logging.py
"""

import logging

import pytest
from loguru import logger as loguru_logger

from sharegate.core.logging import REDACTED, InterceptHandler, get_logger, setup_logging


@pytest.fixture
def captured():
    """Collect loguru messages emitted during a test"""
    messages = []
    sink_id = loguru_logger.add(lambda m: messages.append(m.record), level="DEBUG")
    yield messages
    loguru_logger.remove(sink_id)


class TestGetLogger:
    """Test get_logger function"""

    def test_binds_name(self, captured):
        get_logger("sharegate.test").info("hello")
        assert captured[-1]["extra"]["name"] == "sharegate.test"
        assert captured[-1]["message"] == "hello"

    def test_levels(self, captured):
        logger = get_logger(__name__)
        logger.debug("d")
        logger.warning("w")
        logger.error("e")
        assert [r["level"].name for r in captured[-3:]] == ["DEBUG", "WARNING", "ERROR"]


class TestInterceptHandler:
    """Test standard logging is routed into loguru"""

    def test_stdlib_records_reach_loguru(self, captured):
        std_logger = logging.getLogger("sharegate.stdlib")
        std_logger.handlers = [InterceptHandler()]
        std_logger.propagate = False
        std_logger.setLevel(logging.INFO)

        std_logger.info("from stdlib")

        assert any(r["message"] == "from stdlib" for r in captured)


class TestSetupLogging:
    """Test setup_logging"""

    def test_setup_logging_with_file_sink(self, tmp_path, monkeypatch):
        from sharegate.core import logging as logging_module

        log_file = tmp_path / "sharegate.log"
        monkeypatch.setattr(logging_module.settings, "LOG_FILE", str(log_file))

        setup_logging()
        get_logger("sharegate.file").warning("to file")
        loguru_logger.complete()

        assert log_file.exists()
        assert "to file" in log_file.read_text()

        monkeypatch.setattr(logging_module.settings, "LOG_FILE", None)
        setup_logging()

    def test_sensitive_fields_are_redacted(self):
        setup_logging()
        records = []
        sink_id = loguru_logger.add(lambda m: records.append(m.record), level="DEBUG")

        get_logger("sharegate.gate").bind(password="hunter2", document_id="d1").info("unlock attempt")
        loguru_logger.remove(sink_id)

        record = records[-1]
        assert record["extra"]["password"] == REDACTED
        assert record["extra"]["document_id"] == "d1"

    def test_intercepted_records_carry_logger_name(self, captured):
        std_logger = logging.getLogger("sharegate.named")
        std_logger.handlers = [InterceptHandler()]
        std_logger.propagate = False
        std_logger.setLevel(logging.INFO)

        std_logger.info("named")

        assert captured[-1]["extra"]["name"] == "sharegate.named"
