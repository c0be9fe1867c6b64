"""
Logging setup for the chat relay.

Many connections log through the same root logger at once, so every
record is stamped with the connection it came from (``connection_id``
and, once registered, ``nickname``) by `ConnectionContextFilter`:

- console: one human-readable line per record
- error file: one JSON object per line, ERROR and above
- Loki: same JSON lines, when LOKI_ENABLED is set
"""

import json
import logging
import sys
from contextvars import ContextVar
from typing import Any

from chat_relay.settings import app_settings

CONTEXT_FIELDS = ("connection_id", "nickname")
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Each connection handler runs in its own task and sees its own value.
log_context: ContextVar[dict[str, Any]] = ContextVar("log_context", default={})


def set_log_context(**kwargs: Any) -> None:
    """
    Add fields to the log context of the current connection.

    Example:
        >>> set_log_context(connection_id="1a2b3c4d")
        >>> set_log_context(nickname="alice")
        >>> logger.info("REG|alice|1")  # [1a2b3c4d alice] REG|alice|1
    """
    log_context.set({**log_context.get(), **kwargs})


def get_log_context() -> dict[str, Any]:
    return log_context.get()


def clear_log_context() -> None:
    log_context.set({})


class ConnectionContextFilter(logging.Filter):
    """Copies the current log context onto each record, ``-`` when unset."""

    def filter(self, record: logging.LogRecord) -> bool:
        context = log_context.get()
        for field in CONTEXT_FIELDS:
            setattr(record, field, context.get(field, "-"))
        return True


class ConsoleFormatter(logging.Formatter):
    """
    Single-line console format.

    Warnings and errors also name the code location that logged them.
    """

    FMT = "%(asctime)s %(levelname)s [%(connection_id)s %(nickname)s] %(message)s"
    LOCATION_FMT = (
        "%(asctime)s %(levelname)s [%(connection_id)s %(nickname)s] "
        "%(module)s.%(funcName)s:%(lineno)d - %(message)s"
    )

    def __init__(self) -> None:
        super().__init__(self.FMT, datefmt=DATE_FORMAT)
        self._location = logging.Formatter(self.LOCATION_FMT, datefmt=DATE_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        # Records formatted without passing through the filter
        if not hasattr(record, "connection_id"):
            ConnectionContextFilter().filter(record)

        if record.levelno >= logging.WARNING:
            return self._location.format(record)
        return super().format(record)


class JSONLineFormatter(logging.Formatter):
    """One JSON object per record, for the error file and Loki."""

    def format(self, record: logging.LogRecord) -> str:
        context = log_context.get()
        entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, DATE_FORMAT),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
            "environment": app_settings.ENVIRONMENT,
        }
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, context.get(field, "-"))
            if value != "-":
                entry[field] = value

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def setup_logging() -> logging.Logger:
    """
    Configure the root logger with console, error file and Loki handlers.

    Returns:
        The root logger.
    """
    logger = logging.getLogger()
    logger.setLevel(getattr(logging, app_settings.LOG_LEVEL.upper()))

    # Clear existing handlers to avoid duplicates
    logger.handlers.clear()

    def add_handler(
        handler: logging.Handler, formatter: logging.Formatter, level: int
    ) -> None:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        handler.addFilter(ConnectionContextFilter())
        logger.addHandler(handler)

    add_handler(
        logging.StreamHandler(sys.stdout), ConsoleFormatter(), logging.DEBUG
    )

    try:
        add_handler(
            logging.FileHandler(app_settings.LOG_FILE_PATH),
            JSONLineFormatter(),
            logging.ERROR,
        )
    except OSError as e:
        logger.warning(f"Could not create file handler: {e}")

    if app_settings.LOKI_ENABLED:
        try:
            from logging_loki import LokiHandler

            add_handler(
                LokiHandler(
                    url=f"{app_settings.LOKI_URL}/loki/api/v{app_settings.LOKI_VERSION}/push",
                    tags={
                        "application": "chat-relay",
                        "environment": app_settings.ENVIRONMENT,
                    },
                    version=app_settings.LOKI_VERSION,
                ),
                JSONLineFormatter(),
                logging.INFO,
            )
        except Exception as e:
            logger.warning(f"Could not configure Loki handler: {e}")

    return logger


logger = setup_logging()
