"""Structured JSON logging with correlation-id and actor context."""

from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any

CORRELATION_ID_CTX: ContextVar[str] = ContextVar("correlation_id", default="")
ACTOR_ID_CTX: ContextVar[int | None] = ContextVar("actor_id", default=None)

# Fields callers may pass through ``extra=`` that end up in the JSON line.
_EXTRA_KEYS = (
    "user_id",
    "provider_id",
    "document_id",
    "service_request_id",
    "rate_limit_key",
    "verification_status",
    "cancelled_requests",
    "path",
    "method",
    "status_code",
)


class JsonLogFormatter(logging.Formatter):
    """Serialize log records into one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": CORRELATION_ID_CTX.get(),
        }
        actor_id = ACTOR_ID_CTX.get()
        if actor_id is not None:
            payload["actor_id"] = actor_id

        for key in _EXTRA_KEYS:
            value = getattr(record, key, None)
            if value not in (None, ""):
                payload[key] = value

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False)


def setup_logging(level: str = "INFO") -> None:
    """Route root logger output through the JSON formatter on stdout."""
    normalized_level = getattr(logging, level.upper(), logging.INFO)
    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(JsonLogFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(normalized_level)
    root_logger.addHandler(handler)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def set_correlation_id(correlation_id: str) -> None:
    """Store correlation id in request-local context."""
    CORRELATION_ID_CTX.set(correlation_id)


def set_actor_id(user_id: int | None) -> None:
    """Store the authenticated user id so later log lines carry it."""
    ACTOR_ID_CTX.set(user_id)
