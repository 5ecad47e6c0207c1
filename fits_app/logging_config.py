"""Structured JSON logging for the ingestion pipelines.

Every record carries the correlation id of the pipeline run that emitted it,
and extra fields pass through :func:`redact_for_log` so mail content, OAuth
tokens and addresses never reach the log stream.
"""

from __future__ import annotations

import contextlib
import contextvars
import json
import logging
import os
import re
import uuid
from typing import Any, Dict, Iterator

CORRELATION_ID: contextvars.ContextVar[str | None] = contextvars.ContextVar("correlation_id", default=None)

# Attributes every LogRecord has; anything else on a record came in through ``extra``.
_RECORD_ATTRIBUTES = set(logging.LogRecord("", 0, "", 0, "", (), None).__dict__) | {"message", "taskName"}

SENSITIVE_KEYS = frozenset(
    {
        "access_token",
        "refresh_token",
        "code",
        "authorization",
        "account_address",
        "sender_email",
        "sender_name",
        "subject",
        "snippet",
        "body_text",
        "description",
        "uploaded_image",
        "image_url",
        "source_url",
    }
)
_EMAIL = re.compile(r"[\w.\-+]+@[\w.\-]+")


class JsonFormatter(logging.Formatter):
    """One JSON object per line: level, logger, event, correlation id and extras."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        message = super().format(record)
        payload: Dict[str, Any] = {
            "timestamp": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S%z"),
            "level": record.levelname,
            "logger": record.name,
            "message": message,
            "event": getattr(record, "event", message),
            "correlation_id": getattr(record, "correlation_id", None) or CORRELATION_ID.get(),
        }
        extras = {key: value for key, value in record.__dict__.items() if key not in _RECORD_ATTRIBUTES}
        for key, value in extras.items():
            payload.setdefault(key, redact_for_log(value))
        return json.dumps(payload)


def configure_logging(level: int | str | None = None) -> None:
    """Install the JSON formatter on the root logger (level from ``LOG_LEVEL``)."""

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    logging.root.handlers.clear()
    logging.basicConfig(level=level or os.getenv("LOG_LEVEL", "INFO"), handlers=[handler])


def _redact_text(value: str) -> str:
    if _EMAIL.search(value):
        return _EMAIL.sub("[redacted-email]", value)
    lowered = value.lower()
    if lowered.startswith("http"):
        return "[redacted-url]"
    if lowered.startswith("data:"):
        return "[redacted-data-url]"
    return value


def redact_for_log(payload: Any) -> Any:
    """Recursively mask sensitive keys, email addresses, URLs and data URLs."""

    if payload is None or isinstance(payload, (bool, int, float)):
        return payload
    if isinstance(payload, str):
        return _redact_text(payload)
    if isinstance(payload, (list, tuple)):
        return [redact_for_log(item) for item in payload]
    if isinstance(payload, dict):
        return {
            key: "[redacted]" if key in SENSITIVE_KEYS else redact_for_log(value)
            for key, value in payload.items()
        }
    return str(payload)


def get_logger(name: str) -> logging.Logger:
    if not logging.getLogger().handlers:
        configure_logging()
    return logging.getLogger(name)


def ensure_correlation_id(correlation_id: str | None = None) -> str:
    """Return the active correlation id, adopting ``correlation_id`` or minting one."""

    if correlation_id:
        CORRELATION_ID.set(correlation_id)
        return correlation_id
    current = CORRELATION_ID.get()
    if current:
        return current
    minted = uuid.uuid4().hex
    CORRELATION_ID.set(minted)
    return minted


def log_event(logger: logging.Logger, level: int, event: str, **fields: Any) -> None:
    """Log a named event; ``fields`` are redacted and attached as record extras."""

    correlation_id = ensure_correlation_id(fields.pop("correlation_id", None))
    exc_info = fields.pop("exc_info", None)
    logger.log(
        level,
        event,
        exc_info=exc_info,
        extra={"event": event, "correlation_id": correlation_id, **redact_for_log(fields)},
    )


@contextlib.contextmanager
def operation_context(name: str, correlation_id: str | None = None) -> Iterator[str]:
    """Give one pipeline run its own correlation id, restoring the outer one afterwards."""

    scoped_id = correlation_id or uuid.uuid4().hex
    token = CORRELATION_ID.set(scoped_id)
    try:
        logging.getLogger(__name__).debug("operation started", extra={"operation": name, "correlation_id": scoped_id})
        yield scoped_id
    finally:
        CORRELATION_ID.reset(token)


__all__ = [
    "CORRELATION_ID",
    "JsonFormatter",
    "configure_logging",
    "ensure_correlation_id",
    "get_logger",
    "log_event",
    "operation_context",
    "redact_for_log",
]
