"""Logging setup and request-scoped log context.

All application loggers live under the ``taskboard`` namespace. Messages are
dotted event names (``tasks.import.applied``) and structured data travels in
``extra={...}``; the formatters render every non-standard record attribute.

Request ids and the current route are kept in context vars so that records
emitted deep inside the engine still carry the HTTP request that caused them.
"""

from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar, Token
from typing import Any, Final

from taskboard.core.config import settings

TRACE_LEVEL: Final[int] = 5
ROOT_LOGGER_NAME: Final[str] = "taskboard"

logging.addLevelName(TRACE_LEVEL, "TRACE")

_request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)
_request_method_var: ContextVar[str | None] = ContextVar("request_method", default=None)
_request_path_var: ContextVar[str | None] = ContextVar("request_path", default=None)

# Attributes present on every LogRecord; anything else came from `extra`.
_STANDARD_ATTRS: Final[frozenset[str]] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
    | {"message", "asctime", "request_id", "request_method", "request_path"},
)

_configured = False


def set_request_id(request_id: str | None) -> Token[str | None]:
    """Bind a request id to the current context."""
    return _request_id_var.set(request_id)


def reset_request_id(token: Token[str | None]) -> None:
    """Restore the request id that was active before `set_request_id`."""
    _request_id_var.reset(token)


def get_request_id() -> str | None:
    """Return the request id bound to the current context, if any."""
    return _request_id_var.get()


def set_request_route_context(
    method: str,
    path: str,
) -> tuple[Token[str | None], Token[str | None]]:
    """Bind the HTTP method and path to the current context."""
    return _request_method_var.set(method), _request_path_var.set(path)


def reset_request_route_context(
    tokens: tuple[Token[str | None], Token[str | None]],
) -> None:
    """Restore the route context captured by `set_request_route_context`."""
    method_token, path_token = tokens
    _request_method_var.reset(method_token)
    _request_path_var.reset(path_token)


class RequestContextFilter(logging.Filter):
    """Copy request context vars onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = _request_id_var.get()
        record.request_method = _request_method_var.get()
        record.request_path = _request_path_var.get()
        return True


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key: value
        for key, value in vars(record).items()
        if key not in _STANDARD_ATTRS and not key.startswith("_")
    }


class JsonFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "event": record.getMessage(),
        }
        request_id = getattr(record, "request_id", None)
        if request_id:
            payload["request_id"] = request_id
        payload.update(_extra_fields(record))
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str, ensure_ascii=False)


class KeyValueFormatter(logging.Formatter):
    """Human readable `event key=value ...` lines."""

    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)-7s %(name)s %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = _extra_fields(record)
        request_id = getattr(record, "request_id", None)
        if request_id:
            fields = {"request_id": request_id, **fields}
        if fields:
            rendered = " ".join(f"{key}={value}" for key, value in fields.items())
            first, sep, rest = line.partition("\n")
            line = f"{first} {rendered}{sep}{rest}"
        return line


def configure_logging(*, level: str | None = None, fmt: str | None = None) -> None:
    """Install the handler on the `taskboard` logger (idempotent)."""
    global _configured
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    level_name = (level or settings.log_level).upper()
    logger.setLevel(TRACE_LEVEL if level_name == "TRACE" else level_name)
    if _configured:
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.addFilter(RequestContextFilter())
    if (fmt or settings.log_format) == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(KeyValueFormatter())
    logger.addHandler(handler)
    logger.propagate = False
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the `taskboard` namespace."""
    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
