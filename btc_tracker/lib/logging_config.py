"""Logging setup for the CLI and the refresh scheduler.

Console output plus an optional rotating log file. Every handler carries a
redaction filter so provider keys passed in rate/price URLs never reach disk.
"""

import logging
import os
import re
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_LOG_FILE = Path.home() / ".btc-tracker" / "btc-tracker.log"

# Third-party loggers that are chatty at INFO (one line per scheduler run / request)
NOISY_LOGGERS = ("apscheduler", "aiohttp", "tenacity")


class APIKeyFilter(logging.Filter):
    """Redact rate and price provider credentials from log records."""

    SENSITIVE_KEYS = {"apikey", "api_key", "access_key", "x_cg_demo_api_key", "x_cg_pro_api_key"}

    SENSITIVE_PATTERNS = [
        (
            re.compile(
                r"\b(apikey|api_key|access_key|x_cg_demo_api_key|x_cg_pro_api_key)=([^&\s]+)",
                re.IGNORECASE,
            ),
            r"\1=[REDACTED]",
        ),
        (
            re.compile(r"(x-cg-(?:demo|pro)-api-key['\"]?\s*:\s*['\"]?)([^'\"\s,}]+)", re.IGNORECASE),
            r"\1[REDACTED]",
        ),
        # exchangerate-api v6 puts the key in the path: /v6/<key>/latest/EUR
        (re.compile(r"(/v6/)([A-Za-z0-9]{16,})(/)"), r"\1[REDACTED]\3"),
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        """Redact the message and its arguments; never drops a record."""
        if isinstance(record.msg, str):
            record.msg = self.redact(record.msg)

        if isinstance(record.args, dict):
            record.args = self._redact_value(record.args)
        elif isinstance(record.args, tuple):
            record.args = tuple(self._redact_value(arg) for arg in record.args)

        return True

    @classmethod
    def redact(cls, text: str) -> str:
        """Apply every redaction pattern to ``text``."""
        for pattern, replacement in cls.SENSITIVE_PATTERNS:
            text = pattern.sub(replacement, text)
        return text

    def _redact_value(self, value: Any) -> Any:
        if isinstance(value, str):
            return self.redact(value)
        if isinstance(value, dict):
            return {
                k: "[REDACTED]"
                if str(k).lower().replace("-", "_") in self.SENSITIVE_KEYS
                else self._redact_value(v)
                for k, v in value.items()
            }
        if isinstance(value, (list, tuple)):
            return type(value)(self._redact_value(item) for item in value)
        return value


def _configure_handler(
    handler: logging.Handler, level: int, redaction: APIKeyFilter
) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    handler.addFilter(redaction)
    return handler


def setup_logging(level: int = logging.INFO, log_file: str | None = None) -> None:
    """
    Configure root logging for btc-tracker.

    Safe to call more than once: handlers are only installed on the first
    call, later calls just make sure existing handlers redact.

    Args:
        level: Logging level (default: INFO)
        log_file: Log file path. None means ``$LOG_FILE`` or
            ``~/.btc-tracker/btc-tracker.log``; "" disables file logging.

    Example:
        >>> from btc_tracker.lib.logging_config import setup_logging
        >>> setup_logging(logging.DEBUG, log_file="")
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    redaction = APIKeyFilter()

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(level if level <= logging.DEBUG else logging.WARNING)

    if root_logger.handlers:
        for handler in root_logger.handlers:
            if not any(isinstance(f, APIKeyFilter) for f in handler.filters):
                handler.addFilter(redaction)
        return

    root_logger.addHandler(_configure_handler(logging.StreamHandler(), level, redaction))

    if log_file is None:
        log_file = os.getenv("LOG_FILE", str(DEFAULT_LOG_FILE))
    if not log_file:
        return

    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    # 5MB per file, keep 3 backups
    file_handler = RotatingFileHandler(
        log_path, maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8"
    )
    root_logger.addHandler(_configure_handler(file_handler, level, redaction))


def get_logger(name: str) -> logging.Logger:
    """
    Get a module logger that redacts provider credentials.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Logger with an APIKeyFilter attached
    """
    logger = logging.getLogger(name)

    if not any(isinstance(f, APIKeyFilter) for f in logger.filters):
        logger.addFilter(APIKeyFilter())

    return logger
