"""
Structured logging configuration for the cheerboard backend.

Provides JSON-formatted logging with file rotation for production environments
and human-readable console logging for development.

Loggers:
- api: HTTP requests, responses, exception handlers
- services: Moderation, query and favorite operations
- store: Document store calls, timeouts and retries
- cache: Cache hits, misses and invalidations
- jobs: Reconciliation runs and other CLI jobs
"""

import json
import logging
import logging.handlers
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional


LOGGER_NAMES = ["api", "services", "store", "cache", "jobs"]


class JSONFormatter(logging.Formatter):
    """
    Formatter that outputs one JSON object per log record.

    Each record includes timestamp, level, logger, message, module,
    function and line, plus exception info and any ``extra`` fields.
    """

    _RESERVED = set(vars(logging.makeLogRecord({})).keys()) | {"message", "asctime"}

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON string."""
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Fields passed through logger.info("msg", extra={...})
        for key, value in vars(record).items():
            if key not in self._RESERVED and key not in log_data:
                log_data[key] = value

        return json.dumps(log_data, default=str)


class ConsoleFormatter(logging.Formatter):
    """
    Human-readable formatter for console output in development.

    Example: [2026-10-17 10:30:45] INFO - cheerboard.cache - Cache HIT: performer:prf_01...
    """

    def __init__(self):
        super().__init__(
            fmt="[%(asctime)s] %(levelname)s - %(name)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )


def _get_log_level() -> int:
    """
    Get log level from the CHEERBOARD_LOG_LEVEL environment variable.

    Defaults to INFO for unknown or missing values.
    """
    level_str = os.environ.get("CHEERBOARD_LOG_LEVEL", "INFO").upper()
    return getattr(logging, level_str, logging.INFO)


def _get_log_dir() -> Path:
    """Get (and create) the log directory from CHEERBOARD_LOG_DIR, default ./logs."""
    log_dir = Path(os.environ.get("CHEERBOARD_LOG_DIR", "logs"))
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir


def _is_production() -> bool:
    """Check CHEERBOARD_ENV for the production environment."""
    return os.environ.get("CHEERBOARD_ENV", "development").lower() == "production"


def configure_logging() -> Dict[str, logging.Logger]:
    """
    Configure the named cheerboard loggers.

    Behavior:
    - Production (CHEERBOARD_ENV=production): JSON logs to one rotating
      file per logger (10MB, 5 backups)
    - Development (default): human-readable console output

    Returns:
        Dictionary mapping logger names to configured Logger instances
    """
    log_level = _get_log_level()
    is_prod = _is_production()
    log_dir = _get_log_dir() if is_prod else None

    loggers = {}

    for logger_name in LOGGER_NAMES:
        logger = logging.getLogger(f"cheerboard.{logger_name}")
        logger.setLevel(log_level)
        logger.propagate = False
        logger.handlers.clear()

        if is_prod:
            file_handler = logging.handlers.RotatingFileHandler(
                log_dir / f"{logger_name}.log",
                maxBytes=10 * 1024 * 1024,
                backupCount=5,
                encoding="utf-8"
            )
            file_handler.setLevel(log_level)
            file_handler.setFormatter(JSONFormatter())
            logger.addHandler(file_handler)
        else:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(log_level)
            console_handler.setFormatter(ConsoleFormatter())
            logger.addHandler(console_handler)

        loggers[logger_name] = logger

    return loggers


_loggers: Optional[Dict[str, logging.Logger]] = None


def get_logger(name: str) -> logging.Logger:
    """
    Get a configured logger by name.

    Args:
        name: Logger name (api, services, store, cache, jobs)

    Raises:
        ValueError: If logger name is not recognized

    Example:
        >>> logger = get_logger("services")
        >>> logger.info("Approved event", extra={"event_id": "evt_01..."})
    """
    global _loggers

    if _loggers is None:
        _loggers = configure_logging()

    if name not in _loggers:
        raise ValueError(
            f"Unknown logger name: {name}. "
            f"Valid names: {', '.join(_loggers.keys())}"
        )

    return _loggers[name]


def init_logging() -> Dict[str, logging.Logger]:
    """(Re)initialize logging configuration; called on application startup."""
    global _loggers
    _loggers = configure_logging()
    return _loggers
