"""Logging configuration for the daemon.

Three kinds of output share one set of handlers: per-tick state reports
(logger ``pifand.report``), informational events and errors (every
other logger). Everything goes to stderr; when a log directory is
configured it also goes to a file rotated at midnight, keeping
``retention_days`` old files.
"""

import logging
import sys
from logging.handlers import TimedRotatingFileHandler

from pifand.base.config import DaemonConfig

REPORT_LOGGER = "pifand.report"
LOG_FORMAT = "%(asctime)s | %(levelname)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_NAME = "fan-control.log"


class ReportFormatter(logging.Formatter):
    """Formatter that leaves state report lines untouched.

    Report lines already start with their own timestamp and end with a
    status token, so they are written as-is; other records get the
    usual timestamp and level prefix.
    """

    def format(self, record: logging.LogRecord) -> str:
        if record.name == REPORT_LOGGER:
            return record.getMessage()
        return super().format(record)


def setup_logging(config: DaemonConfig, verbose: bool = False) -> None:
    """Configure root logging once per process.

    Args:
        config: Daemon configuration supplying log directory, retention
            and the debug flag
        verbose: Force debug output regardless of configuration

    """
    level = logging.DEBUG if (verbose or config.debug) else logging.INFO
    formatter = ReportFormatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    log_dir = config.logging.log_dir
    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(
            TimedRotatingFileHandler(
                log_dir / LOG_FILE_NAME,
                when="midnight",
                backupCount=config.logging.retention_days,
            )
        )
    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(level=level, handlers=handlers, force=True)
    logging.getLogger(REPORT_LOGGER).setLevel(logging.INFO)
