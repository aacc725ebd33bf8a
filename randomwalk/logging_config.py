"""Logging configuration for the random-walk execution context."""

import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Optional
import json
from datetime import datetime


_RESERVED_ATTRS = frozenset(
    (
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "getMessage",
        "exc_info",
        "exc_text",
        "stack_info",
        "taskName",
    )
)

MODULE_LOGGERS = ("state", "store", "budget", "client", "writer", "cli")


class JsonFormatter(logging.Formatter):
    """JSON formatter for structured logging in production."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "thread": record.threadName,
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        # Fields passed through extra=
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and key not in log_entry:
                log_entry[key] = value

        return json.dumps(log_entry, separators=(",", ":"), default=str)


def setup_logging(
    level: Optional[str] = None,
    log_dir: Optional[str] = None,
    enable_console: bool = True,
    enable_file: bool = True,
    json_format: Optional[bool] = None,
    max_file_size_mb: int = 10,
    backup_count: int = 5,
) -> None:
    """
    Setup logging for a random-walk run.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Directory for log files (defaults to logs/)
        enable_console: Enable console logging
        enable_file: Enable file logging
        json_format: Use JSON format for logs; derived from RW_ENVIRONMENT if None
        max_file_size_mb: Maximum size per log file in MB
        backup_count: Number of backup files to keep
    """
    if level is None:
        level = os.getenv("RW_LOG_LEVEL", "INFO")
    level = level.upper()

    if json_format is None:
        json_format = os.getenv("RW_ENVIRONMENT", "development").lower() == "production"

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level))
    root_logger.handlers.clear()

    if json_format:
        formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s "
            "[%(threadName)s %(filename)s:%(lineno)d]"
        )

    if enable_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(getattr(logging, level))
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    if enable_file:
        if log_dir is None:
            log_dir = os.getenv("RW_LOG_DIR", "logs")
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        main_handler = logging.handlers.RotatingFileHandler(
            log_path / "randomwalk.log",
            maxBytes=max_file_size_mb * 1024 * 1024,
            backupCount=backup_count,
            encoding="utf-8",
        )
        main_handler.setLevel(getattr(logging, level))
        main_handler.setFormatter(formatter)
        root_logger.addHandler(main_handler)

        error_handler = logging.handlers.RotatingFileHandler(
            log_path / "randomwalk_errors.log",
            maxBytes=max_file_size_mb * 1024 * 1024,
            backupCount=backup_count,
            encoding="utf-8",
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(formatter)
        root_logger.addHandler(error_handler)

    _setup_module_loggers()


def _setup_module_loggers() -> None:
    """Apply per-module level overrides such as RW_LOG_LEVEL_WRITER=DEBUG."""
    for logger_name in MODULE_LOGGERS:
        level = os.getenv(f"RW_LOG_LEVEL_{logger_name.upper()}", None)
        if level:
            logger = logging.getLogger(f"randomwalk.{logger_name}")
            logger.setLevel(getattr(logging, level.upper()))


def get_logger(name: str) -> logging.Logger:
    """Get logger for specific module."""
    if not name.startswith("randomwalk."):
        name = f"randomwalk.{name}"
    return logging.getLogger(name)
