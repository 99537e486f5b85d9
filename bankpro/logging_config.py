"""
Logging setup for bankpro.

Components log through named children of the "bankpro" logger. Audit-style
events go through log_action, which tags the record with who did what to
which record; JSONFormatter emits those tags as top-level keys.
"""

import logging
import json
from datetime import datetime, timezone
from typing import Optional


TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Record attributes set by log_action, in output order
CONTEXT_FIELDS = ("user_id", "action", "resource", "extra")


class JSONFormatter(logging.Formatter):
    """One JSON object per line; unset context fields are left out"""

    def format(self, record):
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                entry[field] = value

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def _make_formatter(log_format: str) -> logging.Formatter:
    if log_format.lower() == "json":
        return JSONFormatter()
    return logging.Formatter(TEXT_FORMAT)


def setup_logging(level: str = "INFO", log_format: str = "json",
                  logger_name: str = "bankpro") -> logging.Logger:
    """
    Point logger_name at stderr with a single handler.

    Calling it again replaces the handler rather than stacking another one.
    The logger stops propagating so records are not printed twice when the
    host application has its own root handler.

    Args:
        level: Level name such as "INFO" or "debug"
        log_format: "json" or "text"
        logger_name: Logger to configure; children inherit it
    """
    logger = logging.getLogger(logger_name)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(_make_formatter(log_format))
    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper()))
    logger.propagate = False
    return logger


def get_logger(name: str = "bankpro") -> logging.Logger:
    return logging.getLogger(name)


def log_action(logger: logging.Logger, level: str, message: str,
               user_id: Optional[int] = None, action: Optional[str] = None,
               resource: Optional[str] = None, extra: Optional[dict] = None):
    """
    Emit message with the acting user, the action name and the affected
    resource (e.g. "card:3") attached to the record. Nothing is built when
    the level is disabled.
    """
    levelno = getattr(logging, level.upper())
    if not logger.isEnabledFor(levelno):
        return

    record = logger.makeRecord(logger.name, levelno, __name__, 0, message, (), None)
    for field, value in zip(CONTEXT_FIELDS, (user_id, action, resource, extra)):
        if value is not None:
            setattr(record, field, value)

    logger.handle(record)
