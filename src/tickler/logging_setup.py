# src/tickler/logging_setup.py

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s [%(threadName)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Loggers that log once per reminder or per sync; fine in the file, noisy in a REPL.
_CHATTY_PREFIXES = (
    "tickler.tasks.reminder_scheduler",
    "tickler.connectors.matrix_",
)


class _ReplFilter(logging.Filter):
    """
    Keep the terminal readable while the console REPL is running.

    Our own loggers pass, except the chatty ones (WARNING+ only).
    Third-party loggers and captured Python warnings only show ERROR+.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if not record.name.startswith("tickler."):
            return record.levelno >= logging.ERROR
        if record.name.startswith(_CHATTY_PREFIXES):
            return record.levelno >= logging.WARNING
        return True


def setup_logging(
    *,
    log_dir: str | Path = ".local/tickler",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    max_bytes: int = 2_000_000,
    backup_count: int = 3,
) -> Path:
    """
    Send filtered logs to stderr and full logs to <log_dir>/tickler.log.

    Replaces any handlers already on the root logger, so it can be called once
    at startup before anything logs. Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "tickler.log"

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(formatter)
    console.addFilter(_ReplFilter())

    logfile = RotatingFileHandler(
        log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    logfile.setLevel(file_level)
    logfile.setFormatter(formatter)

    root.addHandler(console)
    root.addHandler(logfile)

    # warnings.warn(...) -> 'py.warnings' logger
    logging.captureWarnings(True)
    return log_file
