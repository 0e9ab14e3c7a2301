"""
Logging Setup

Loan operations attach `loan_id`, `action` and `extra` to their log
records. JSONFormatter writes one JSON object per record including those
fields; TextFormatter appends them to a readable line as key=value pairs.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional


STRUCTURED_FIELDS = ('loan_id', 'action', 'extra')

TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def _structured(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        name: getattr(record, name)
        for name in STRUCTURED_FIELDS
        if getattr(record, name, None) is not None
    }


class JSONFormatter(logging.Formatter):
    """One JSON object per log record"""

    def format(self, record):
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "module": record.module,
            "message": record.getMessage(),
        }
        entry.update(_structured(record))
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """Plain lines with any structured fields appended"""

    def __init__(self):
        super().__init__(TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    def format(self, record):
        line = super().format(record)
        fields = _structured(record)
        if fields:
            line += " | " + " ".join(f"{name}={value}" for name, value in fields.items())
        return line


def setup_logging(
    level: str = "INFO",
    logger_name: str = "loan_tracker",
    log_format: str = "json",
    log_file: Optional[str] = None
) -> logging.Logger:
    """
    Attach a single handler to the loan tracker logger.

    Args:
        level: Level name, case-insensitive; unknown names fall back to INFO
        logger_name: Logger to configure
        log_format: "json", or anything else for TextFormatter
        log_file: Write here instead of stderr

    Returns:
        The configured logger. Calling again replaces the earlier handler.
    """
    logger = logging.getLogger(logger_name)

    for previous in list(logger.handlers):
        logger.removeHandler(previous)
        previous.close()

    handler = logging.FileHandler(log_file) if log_file else logging.StreamHandler()
    handler.setFormatter(JSONFormatter() if log_format == "json" else TextFormatter())
    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.propagate = False

    return logger


def get_logger(name: str = "loan_tracker") -> logging.Logger:
    return logging.getLogger(name)


def log_action(logger: logging.Logger, level: str, message: str,
               loan_id: Optional[str] = None, action: Optional[str] = None,
               extra: Optional[dict] = None) -> None:
    """Log `message` at `level` ("info", "warning", ...) with loan fields attached"""
    fields = {
        name: value
        for name, value in (('loan_id', loan_id), ('action', action), ('extra', extra))
        if value
    }
    logger.log(getattr(logging, level.upper()), message, extra=fields)
