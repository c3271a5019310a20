"""
Project loggers.

Every logger gets a stream handler and, unless ``plain_format`` is asked for, a
file handler under ``logs/``. A redaction filter masks anything that looks like
a bearer token or a compact JWT, so a token that slips into a message or an
exception text never reaches the handlers.
"""

import logging
from logging import FileHandler, Logger, StreamHandler
import os
import re
from typing import Any

from src.main.config import config

LOG_DIR = os.path.join(os.path.dirname(__file__), "..", "logs")
LOG_FILE = os.path.join(LOG_DIR, "debug.log")

os.makedirs(LOG_DIR, exist_ok=True)

logging_format = "%(asctime)s [%(levelname)s]|[%(process)d]| %(name)s: %(message)s"
plain_logging_format = "%(asctime)s [%(process)d]| %(message)s"
time_logging_format = "%Y-%m-%d %H:%M:%S"

log_level = getattr(logging, config.app.LOG_LEVEL.upper(), logging.INFO)
file_log_level = getattr(logging, config.app.LOG_LEVEL_FILE.upper(), logging.WARNING)

_TOKEN_PATTERN = re.compile(
    r"(Bearer\s+)?eyJ[\w-]+\.[\w-]+\.[\w-]+", flags=re.IGNORECASE
)
REDACTED = "[REDACTED]"


class TokenRedactingFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = _TOKEN_PATTERN.sub(REDACTED, message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def _handler(handler: logging.Handler, level: int, fmt: str) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, time_logging_format))
    handler.addFilter(TokenRedactingFilter())
    return handler


def get_file_handler() -> FileHandler:
    return _handler(  # type: ignore[return-value]
        FileHandler(LOG_FILE, "a", "utf-8"), file_log_level, logging_format
    )


def get_stream_handler(*, plain_format: bool = False) -> StreamHandler:  # type: ignore[type-arg]
    fmt = plain_logging_format if plain_format else logging_format
    return _handler(StreamHandler(), log_level, fmt)  # type: ignore[return-value]


def get_logger(name: Any, *, plain_format: bool = False) -> Logger:
    """
    Return a configured logger. Log subjects and jti values, never the raw
    tokens or the signing secret.
    """
    logger = logging.getLogger(name)

    if logger.handlers:
        return logger

    logger.setLevel(log_level)
    logger.addHandler(get_stream_handler(plain_format=plain_format))
    if not plain_format:
        logger.addHandler(get_file_handler())

    logger.propagate = False
    return logger
