"""Tests for structured logging setup and context binding."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator

import pytest
import structlog

from fuel_monitor.logging.context import log_context
from fuel_monitor.logging.structured import setup_logging


@pytest.fixture
def restore_root_logger() -> Iterator[None]:
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    yield
    for handler in list(root.handlers):
        if handler not in saved_handlers:
            handler.close()
        root.removeHandler(handler)
    for handler in saved_handlers:
        root.addHandler(handler)
    root.setLevel(saved_level)
    structlog.reset_defaults()


class TestLogContext:
    def test_binds_and_restores(self) -> None:
        structlog.contextvars.clear_contextvars()
        with log_context(run_id="r1"):
            assert structlog.contextvars.get_contextvars() == {"run_id": "r1"}
            with log_context(device_id="simbisa-avondale"):
                assert structlog.contextvars.get_contextvars() == {
                    "run_id": "r1", "device_id": "simbisa-avondale",
                }
            assert structlog.contextvars.get_contextvars() == {"run_id": "r1"}
        assert structlog.contextvars.get_contextvars() == {}


@pytest.mark.usefixtures("restore_root_logger")
class TestSetupLogging:
    def test_json_records_carry_context(self, tmp_path) -> None:
        log_file = tmp_path / "fuel.log"
        setup_logging(level="DEBUG", fmt="json", log_file=str(log_file))
        with log_context(run_id="r42"):
            logging.getLogger("fuel_monitor.test").info("capture started")
        for handler in logging.getLogger().handlers:
            handler.flush()
        record = json.loads(log_file.read_text().strip().splitlines()[-1])
        assert record["event"] == "capture started"
        assert record["run_id"] == "r42"
        assert record["level"] == "info"
        assert record["service"] == "fuel-monitor"
        assert "version" in record

    def test_noisy_loggers_quietened(self) -> None:
        setup_logging(level="DEBUG", fmt="console")
        assert logging.getLogger("aiosqlite").level == logging.WARNING
        assert logging.getLogger().level == logging.DEBUG
