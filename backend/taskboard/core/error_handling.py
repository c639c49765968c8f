"""Request-id middleware and exception handlers for the HTTP API.

Every response carries an `X-Request-Id` header (client supplied or
generated), and the id is bound into the log context for the duration of the
request.

Errors share one JSON shape, `{"detail": ..., "request_id": ...}`:

- request validation failures return 422 with the structured field errors;
- engine errors (`TaskboardError`) return the status in `_ENGINE_ERROR_STATUS`
  with the error message as detail;
- anything unhandled is logged with its traceback and returns a generic 500.
"""

from __future__ import annotations

from time import perf_counter
from typing import TYPE_CHECKING, Any, Final
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError, ResponseValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import Response

from taskboard.core.config import settings
from taskboard.core.errors import (
    DataSetValidationError,
    DataSourceError,
    FieldValueError,
    TaskboardError,
)
from taskboard.core.logging import (
    TRACE_LEVEL,
    get_logger,
    reset_request_id,
    reset_request_route_context,
    set_request_id,
    set_request_route_context,
)

if TYPE_CHECKING:  # pragma: no cover
    from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = get_logger(__name__)

REQUEST_ID_HEADER: Final[str] = "X-Request-Id"
_HEALTH_CHECK_PATHS: Final[frozenset[str]] = frozenset({"/health", "/healthz"})
_ENGINE_ERROR_STATUS: Final[tuple[tuple[type[TaskboardError], int], ...]] = (
    (DataSetValidationError, 422),
    (FieldValueError, 422),
    (DataSourceError, 503),
)


class RequestIdMiddleware:
    """Bind a request id to each HTTP request and log its outcome."""

    def __init__(self, app: ASGIApp, *, header_name: str = REQUEST_ID_HEADER) -> None:
        self._app = app
        self._header_name_bytes = header_name.lower().encode("latin-1")
        self._slow_request_ms = settings.request_log_slow_ms
        self._include_health_logs = settings.request_log_include_health

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self._app(scope, receive, send)
            return

        method = str(scope.get("method") or "UNKNOWN").upper()
        path = str(scope.get("path") or "")
        should_log = self._include_health_logs or path not in _HEALTH_CHECK_PATHS
        started_at = perf_counter()
        status_code: int | None = None

        request_id = self._request_id_for(scope)
        context_token = set_request_id(request_id)
        route_tokens = set_request_route_context(method, path)
        if should_log:
            logger.log(TRACE_LEVEL, "http.request.start", extra={"method": method, "path": path})

        async def send_with_request_id(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                headers: list[tuple[bytes, bytes]] = message.setdefault("headers", [])
                if not any(key.lower() == self._header_name_bytes for key, _ in headers):
                    headers.append((self._header_name_bytes, request_id.encode("latin-1")))
                status = message.get("status")
                status_code = status if isinstance(status, int) else 500
                if should_log:
                    self._log_completion(method, path, status_code, started_at)
            await send(message)

        try:
            await self._app(scope, receive, send_with_request_id)
        finally:
            if should_log and status_code is None:
                logger.warning(
                    "http.request.incomplete",
                    extra={
                        "method": method,
                        "path": path,
                        "duration_ms": int((perf_counter() - started_at) * 1000),
                    },
                )
            reset_request_route_context(route_tokens)
            reset_request_id(context_token)

    def _log_completion(self, method: str, path: str, status_code: int, started_at: float) -> None:
        duration_ms = int((perf_counter() - started_at) * 1000)
        extra = {
            "method": method,
            "path": path,
            "status_code": status_code,
            "duration_ms": duration_ms,
        }
        if status_code >= 500:
            logger.error("http.request.complete", extra=extra)
        elif status_code >= 400:
            logger.warning("http.request.complete", extra=extra)
        else:
            logger.debug("http.request.complete", extra=extra)
        if self._slow_request_ms and duration_ms >= self._slow_request_ms:
            logger.warning(
                "http.request.slow",
                extra={**extra, "slow_threshold_ms": self._slow_request_ms},
            )

    def _request_id_for(self, scope: Scope) -> str:
        request_id: str | None = None
        for key, value in scope.get("headers", []):
            if key.lower() == self._header_name_bytes:
                candidate = value.decode("latin-1").strip()
                if candidate:
                    request_id = candidate
                break
        if request_id is None:
            request_id = uuid4().hex
        # `Request.state` reads from `scope["state"]`.
        scope.setdefault("state", {})["request_id"] = request_id
        return request_id


def install_error_handling(app: FastAPI) -> None:
    """Install the request-id middleware and the exception handlers on `app`."""
    # Added last so it wraps every other middleware.
    app.add_middleware(RequestIdMiddleware)

    app.add_exception_handler(RequestValidationError, _request_validation_exception_handler)
    app.add_exception_handler(ResponseValidationError, _response_validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_exception_handler)
    app.add_exception_handler(TaskboardError, _taskboard_exception_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)


def _get_request_id(request: Request) -> str | None:
    request_id = getattr(request.state, "request_id", None)
    if isinstance(request_id, str) and request_id:
        return request_id
    return None


def _error_payload(*, detail: object, request_id: str | None) -> dict[str, object]:
    payload: dict[str, Any] = {"detail": _json_safe(detail)}
    if request_id:
        payload["request_id"] = request_id
    return payload


def _json_safe(value: object) -> object:
    """Return a JSON-serializable representation for error payloads."""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, dict):
        return {str(key): _json_safe(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_json_safe(item) for item in value]
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


def engine_error_status(exc: TaskboardError) -> int:
    """HTTP status for an engine error (most specific class wins)."""
    for error_type, status_code in _ENGINE_ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return 400


async def _request_validation_exception_handler(request: Request, exc: Exception) -> Response:
    if not isinstance(exc, RequestValidationError):
        msg = "Expected RequestValidationError"
        raise TypeError(msg)
    # Bad client input is not an application error; no ERROR log.
    return JSONResponse(
        status_code=422,
        content=_error_payload(detail=exc.errors(), request_id=_get_request_id(request)),
    )


async def _response_validation_exception_handler(request: Request, exc: Exception) -> Response:
    if not isinstance(exc, ResponseValidationError):
        msg = "Expected ResponseValidationError"
        raise TypeError(msg)
    request_id = _get_request_id(request)
    logger.exception(
        "http.response.invalid",
        extra={"method": request.method, "path": request.url.path, "errors": exc.errors()},
    )
    return JSONResponse(
        status_code=500,
        content=_error_payload(detail="Internal Server Error", request_id=request_id),
    )


async def _http_exception_exception_handler(request: Request, exc: Exception) -> Response:
    if not isinstance(exc, StarletteHTTPException):
        msg = "Expected StarletteHTTPException"
        raise TypeError(msg)
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_payload(detail=exc.detail, request_id=_get_request_id(request)),
        headers=exc.headers,
    )


async def _taskboard_exception_handler(request: Request, exc: Exception) -> Response:
    if not isinstance(exc, TaskboardError):
        msg = "Expected TaskboardError"
        raise TypeError(msg)
    status_code = engine_error_status(exc)
    detail: object = str(exc)
    if isinstance(exc, FieldValueError):
        detail = {"field_id": exc.field_id, "message": str(exc)}
    logger.info(
        "http.request.rejected",
        extra={
            "path": request.url.path,
            "error_type": type(exc).__name__,
            "status_code": status_code,
        },
    )
    return JSONResponse(
        status_code=status_code,
        content=_error_payload(detail=detail, request_id=_get_request_id(request)),
    )


async def _unhandled_exception_handler(request: Request, _exc: Exception) -> JSONResponse:
    request_id = _get_request_id(request)
    logger.exception(
        "http.request.unhandled_exception",
        extra={"method": request.method, "path": request.url.path},
    )
    return JSONResponse(
        status_code=500,
        content=_error_payload(detail="Internal Server Error", request_id=request_id),
        headers={REQUEST_ID_HEADER: request_id} if request_id else None,
    )
