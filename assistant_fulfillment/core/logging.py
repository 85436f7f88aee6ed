"""Structured logging helpers with correlation and conversation metadata."""

from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar, Token
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Iterator, Optional

from pythonjsonlogger import jsonlogger

from assistant_fulfillment.core.config import settings

_correlation_id: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)
_conversation_id: ContextVar[Optional[str]] = ContextVar("conversation_id", default=None)

LEVEL_NAME = str(getattr(settings, "ASSISTANT_LOG_LEVEL", "info")).upper()
LOG_LEVEL = getattr(logging, LEVEL_NAME, logging.INFO)
LOG_SCHEMA_VERSION = str(getattr(settings, "ASSISTANT_LOG_SCHEMA_VERSION", "1.0.0"))
LOG_FILE_NAME = "assistant_fulfillment.log"
LOG_MAX_BYTES = 5 * 1024 * 1024
LOG_BACKUP_COUNT = 5


def _resolve_log_file_path() -> Path | None:
    """Return the rotating log file path when a writable log dir is configured."""

    configured_dir = getattr(settings, "ASSISTANT_LOG_DIR", None)
    if not configured_dir:
        return None
    log_dir = Path(configured_dir)
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
    except PermissionError:
        return None
    return log_dir / LOG_FILE_NAME


LOG_FILE_PATH = _resolve_log_file_path()


class VersionedJsonFormatter(jsonlogger.JsonFormatter):
    """Inject a schema version into each structured log entry."""

    def __init__(self, *args, schema_version: str, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._schema_version = schema_version

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record.setdefault("schema_version", self._schema_version)


class CorrelationIdFilter(logging.Filter):  # pylint: disable=too-few-public-methods
    """Attach correlation and conversation metadata to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or "-"
        record.conversation_id = get_conversation_id() or "-"
        return True


def bind_correlation_id(value: Optional[str]) -> Token[Optional[str]]:
    """Bind ``value`` to the correlation id context variable."""

    return _correlation_id.set(value)


def reset_correlation_id(token: Token[Optional[str]]) -> None:
    """Reset the correlation id context variable to a previous state."""

    _correlation_id.reset(token)


def get_correlation_id() -> Optional[str]:
    """Return the current correlation id if bound."""

    return _correlation_id.get()


def bind_conversation_id(value: Optional[str]) -> Token[Optional[str]]:
    """Bind the assistant conversation id for downstream logging."""

    return _conversation_id.set(value)


def reset_conversation_id(token: Token[Optional[str]]) -> None:
    """Reset the conversation id context variable."""

    _conversation_id.reset(token)


def get_conversation_id() -> Optional[str]:
    """Return the current conversation id if bound."""

    return _conversation_id.get()


@contextmanager
def correlation_id_context(value: Optional[str]) -> Iterator[None]:
    """Context manager that temporarily binds a correlation id."""

    token = bind_correlation_id(value)
    try:
        yield
    finally:
        reset_correlation_id(token)


@contextmanager
def conversation_id_context(value: Optional[str]) -> Iterator[None]:
    """Context manager that temporarily binds a conversation id."""

    token = bind_conversation_id(value)
    try:
        yield
    finally:
        reset_conversation_id(token)


def _ensure_handlers(logger: logging.Logger) -> None:
    if logger.handlers:
        return

    formatter = VersionedJsonFormatter(
        " ".join(
            [
                "%(asctime)s",
                "%(levelname)s",
                "%(name)s",
                "%(message)s",
                "%(correlation_id)s",
                "%(conversation_id)s",
            ]
        ),
        rename_fields={
            "asctime": "timestamp",
            "levelname": "level",
            "name": "logger",
            "correlation_id": "cid",
            "conversation_id": "conversation",
        },
        datefmt="%Y-%m-%d %H:%M:%S",
        json_ensure_ascii=False,
        schema_version=LOG_SCHEMA_VERSION,
    )
    correlation_filter = CorrelationIdFilter()

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.addFilter(correlation_filter)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if LOG_FILE_PATH is not None:
        file_handler = RotatingFileHandler(
            LOG_FILE_PATH, maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUP_COUNT, encoding="utf-8"
        )
        file_handler.addFilter(correlation_filter)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)


def get_logger(name: str) -> logging.Logger:
    """Return a configured logger with correlation id filtering."""

    logger = logging.getLogger(name)
    logger.setLevel(LOG_LEVEL)
    _ensure_handlers(logger)
    return logger


__all__ = [
    "CorrelationIdFilter",
    "VersionedJsonFormatter",
    "bind_correlation_id",
    "bind_conversation_id",
    "reset_correlation_id",
    "reset_conversation_id",
    "get_correlation_id",
    "get_conversation_id",
    "correlation_id_context",
    "conversation_id_context",
    "get_logger",
    "LOG_FILE_PATH",
    "LOG_SCHEMA_VERSION",
]
