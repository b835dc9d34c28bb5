"""
Logging configuration for leadgrader.

Discovery sessions run for a long time and walk hundreds of listings, so
the file log keeps per-sweep debug detail while the console shows only the
level chosen with LEADGRADER_LOG_LEVEL.
"""

import logging
import logging.handlers
import os
import sys
from datetime import datetime
from pathlib import Path

from .config import LOG_DIR

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s.%(funcName)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def console_level_from_env(default: int = logging.INFO) -> int:
    """Level named by LEADGRADER_LOG_LEVEL, or default when unset or unknown."""
    name = os.environ.get("LEADGRADER_LOG_LEVEL", "").strip().upper()
    level = logging.getLevelName(name) if name else default
    return level if isinstance(level, int) else default


def setup_logging(
    name: str = "leadgrader",
    console_level: int = None,
    log_dir: Path = LOG_DIR,
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
) -> logging.Logger:
    """
    Attach a rotating debug file log and a stderr console log to the
    leadgrader logger. Calling it again returns the configured logger.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    log_dir.mkdir(parents=True, exist_ok=True)
    logger.setLevel(logging.DEBUG)
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    file_handler = logging.handlers.RotatingFileHandler(
        filename=log_dir / f"{name}.log",
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    # stdout stays free for the run summary
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(console_level if console_level is not None else console_level_from_env())
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    return logger


def get_logger(module_name: str) -> logging.Logger:
    """Get a child logger for a specific module."""
    return logging.getLogger(f"leadgrader.{module_name}")


class RunContext:
    """
    Context manager for tracking one discovery run.
    Logs start/end times and provides a run_id for correlation.
    """

    def __init__(self, logger: logging.Logger, label: str = "discovery"):
        self.logger = logger
        self.label = label
        self.run_id = datetime.utcnow().strftime("%Y%m%d_%H%M%S")
        self.start_time = None
        self.stats = {
            "entries_seen": 0,
            "listings_collected": 0,
            "websites_evaluated": 0,
            "duplicate_websites": 0,
            "no_website": 0,
            "low_score": 0,
            "errors": 0,
        }

    def __enter__(self):
        self.start_time = datetime.utcnow()
        self.logger.info(f"=== {self.label} run started: {self.run_id} ===")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration = datetime.utcnow() - self.start_time
        self.logger.info(
            f"=== {self.label} run completed: {self.run_id} | "
            f"Duration: {duration} | "
            f"Stats: {self.stats} ==="
        )
        if exc_type:
            self.logger.error(f"Run failed with exception: {exc_type.__name__}: {exc_val}")
        return False  # Don't suppress exceptions

    def increment(self, stat: str, amount: int = 1):
        """Increment a stat counter."""
        if stat in self.stats:
            self.stats[stat] += amount
