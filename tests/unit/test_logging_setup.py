"""Tests for daemon logging configuration."""

import logging
from logging.handlers import TimedRotatingFileHandler

import pytest

from pifand import DaemonConfig
from pifand.base.config import LoggingConfig
from pifand.logging_setup import (
    LOG_FILE_NAME,
    REPORT_LOGGER,
    ReportFormatter,
    setup_logging,
)


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


def _record(name, message, level=logging.INFO):
    return logging.LogRecord(name, level, __file__, 1, message, None, None)


class TestReportFormatter:
    """Test formatting of report and event records."""

    def test_report_lines_untouched(self):
        """Test report records are emitted verbatim."""
        formatter = ReportFormatter("%(levelname)s: %(message)s")
        line = "2024-01-02 03:04:05 | CPU:  55C (State: 1) | OK"
        assert formatter.format(_record(REPORT_LOGGER, line)) == line

    def test_events_prefixed(self):
        """Test other records get the level prefix."""
        formatter = ReportFormatter("%(levelname)s: %(message)s")
        record = _record("pifand.lifecycle", "stopped", logging.ERROR)
        assert formatter.format(record) == "ERROR: stopped"


class TestSetupLogging:
    """Test handler installation."""

    def test_console_only(self, restore_logging):
        """Test no log directory means a single stderr handler."""
        setup_logging(DaemonConfig())

        assert len(restore_logging.handlers) == 1
        assert restore_logging.level == logging.INFO
        assert isinstance(restore_logging.handlers[0].formatter, ReportFormatter)

    def test_verbose(self, restore_logging):
        """Test verbose switches to debug."""
        setup_logging(DaemonConfig(), verbose=True)
        assert restore_logging.level == logging.DEBUG

    def test_debug_from_config(self, restore_logging):
        """Test the debug flag also switches to debug."""
        setup_logging(DaemonConfig(debug=True))
        assert restore_logging.level == logging.DEBUG

    def test_rotating_file(self, restore_logging, tmp_path):
        """Test a log directory adds a midnight-rotated file."""
        log_dir = tmp_path / "logs"
        config = DaemonConfig(
            logging=LoggingConfig(log_dir=log_dir, retention_days=5)
        )

        setup_logging(config)
        logging.getLogger(REPORT_LOGGER).info("report line")
        logging.getLogger("pifand.test").warning("an event")

        (handler,) = [
            h
            for h in restore_logging.handlers
            if isinstance(h, TimedRotatingFileHandler)
        ]
        assert handler.backupCount == 5
        assert handler.when == "MIDNIGHT"
        handler.flush()
        lines = (log_dir / LOG_FILE_NAME).read_text().splitlines()
        assert lines[0] == "report line"
        assert lines[1].endswith("| WARNING: an event")
