"""Tests for logging setup and the metrics collector."""

import json
import logging

import pytest

from upishield.config import settings
from upishield.utils.logging_config import StructuredLogger, init_logging, metrics, setup_logging


@pytest.fixture
def root_logger():
    """Restore the root handlers and level after a test reconfigures logging."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for handler in list(root.handlers):
        root.removeHandler(handler)
        if handler not in handlers:
            handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


class TestSetupLogging:

    def test_log_file_directory_is_created(self, root_logger, tmp_path):
        log_file = tmp_path / "logs" / "nested" / "upishield.log"
        setup_logging(level="INFO", json_format=True, log_file=str(log_file))

        StructuredLogger("upishield.test").info("Transaction scored", risk_level="warning")
        for handler in root_logger.handlers:
            handler.flush()

        line = json.loads(log_file.read_text().splitlines()[-1])
        assert line["message"] == "Transaction scored"
        assert line["context"] == {"risk_level": "warning"}

    def test_no_file_handler_by_default(self, root_logger):
        setup_logging(level="WARNING", json_format=False)
        assert root_logger.level == logging.WARNING
        assert not any(isinstance(h, logging.FileHandler) for h in root_logger.handlers)

    def test_init_logging_in_production(self, root_logger, tmp_path, monkeypatch):
        log_file = tmp_path / "prod-logs" / "upishield.log"
        monkeypatch.setattr(settings, "environment", "prod")
        monkeypatch.setattr(settings, "log_file", str(log_file))

        init_logging()

        assert log_file.parent.is_dir()
        assert any(isinstance(h, logging.FileHandler) for h in root_logger.handlers)


class TestMetrics:

    def test_stats_snapshot(self):
        metrics.reset()
        metrics.increment("analysis.url.total")
        metrics.timing("analysis.url.latency", 0.5)
        metrics.timing("analysis.url.latency", 1.5)

        stats = metrics.get_stats()
        assert stats["counters"] == {"analysis.url.total": 1}
        assert stats["timings"]["analysis.url.latency"] == {"count": 2, "avg": 1.0, "max": 1.5}
        metrics.reset()
