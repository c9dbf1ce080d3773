"""
Logging setup for fluidsdk.

Every module logs under the ``fluidsdk`` namespace. ``configure_logging``
attaches a single handler to that logger, in either a human-readable line
format or one JSON object per line for log shippers.
"""

import json
import logging
import sys
from typing import TextIO

LOGGER_NAME = "fluidsdk"

TEXT_FORMAT = "[%(asctime)s] %(levelname)s [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class JsonFormatter(logging.Formatter):
    """Render each record as a single JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": self.formatTime(record, DATE_FORMAT),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


def configure_logging(
    level: int | str = logging.INFO,
    json_format: bool = False,
    stream: TextIO | None = None,
) -> logging.Logger:
    """
    Configure the fluidsdk logger.

    Args:
        level: Logging level (e.g., logging.INFO, "DEBUG")
        json_format: Emit one JSON object per line instead of text
        stream: Output stream, stdout by default

    Returns:
        The configured logger instance.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    for old in list(logger.handlers):
        logger.removeHandler(old)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(
        JsonFormatter() if json_format else logging.Formatter(TEXT_FORMAT, datefmt=DATE_FORMAT)
    )
    logger.addHandler(handler)

    # Records stay out of the root logger so host applications don't print them twice
    logger.propagate = False

    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    """Get a child logger of fluidsdk."""
    if name:
        return logging.getLogger(f"{LOGGER_NAME}.{name}")
    return logging.getLogger(LOGGER_NAME)
