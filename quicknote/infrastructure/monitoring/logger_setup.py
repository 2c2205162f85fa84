"""Centralized logging configuration for the quicknote application.

Console output goes to stderr so it never mixes with command output. An
optional rotating log file can be added through the `logging.file` setting.
Every handler carries a filter that masks Notion integration tokens.
"""

import logging
import re
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List, Optional

DEFAULT_LOG_LEVEL = logging.WARNING
DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_FILE_MAX_BYTES = 1_000_000
LOG_FILE_BACKUPS = 3

# Chatty third-party loggers kept at WARNING unless we are debugging
NOISY_LOGGERS = ("httpx", "httpcore")

TOKEN_PATTERN = re.compile(r"\b(secret_|ntn_)[A-Za-z0-9]+")
REDACTED = r"\1***"


class TokenRedactingFilter(logging.Filter):
    """Masks integration tokens in the final log message."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = TOKEN_PATTERN.sub(REDACTED, message)
        if redacted != message:
            record.msg, record.args = redacted, None
        return True


def _file_handler(log_file: str) -> logging.Handler:
    path = Path(log_file).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    return RotatingFileHandler(
        path, maxBytes=LOG_FILE_MAX_BYTES, backupCount=LOG_FILE_BACKUPS, encoding='utf-8'
    )


def setup_logging(
    log_level: int = DEFAULT_LOG_LEVEL,
    log_format: str = DEFAULT_LOG_FORMAT,
    log_file: Optional[str] = None
) -> None:
    """Configures the root logger for the application.

    Safe to call more than once; previously installed root handlers are
    replaced.

    Args:
        log_level: The minimum logging level (e.g., logging.DEBUG, logging.INFO).
        log_format: The format string for log messages.
        log_file: Optional path to a rotating log file.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    file_error: Optional[OSError] = None
    if log_file:
        try:
            handlers.append(_file_handler(log_file))
        except OSError as e:
            file_error = e

    formatter = logging.Formatter(log_format)
    redactor = TokenRedactingFilter()
    for handler in handlers:
        handler.setLevel(log_level)
        handler.setFormatter(formatter)
        handler.addFilter(redactor)
        root_logger.addHandler(handler)

    if file_error is not None:
        logging.error(f"Failed to set up file logging to {log_file}: {file_error}")
    elif log_file:
        logging.info(f"Logging to file: {log_file}")

    if log_level > logging.DEBUG:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    logging.debug(f"Logging configured. Level={logging.getLevelName(log_level)}")
