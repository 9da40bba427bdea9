from __future__ import annotations

import logging
import os
import time
import uuid
from typing import Callable

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.exc import TimeoutError as SATimeoutError
from starlette.responses import Response

from procurement.core.clock import utc_now

_APP_START_MONOTONIC = time.monotonic()

_SLOW_REQUEST_MS = int(os.getenv("SLOW_REQUEST_MS", "2000"))

_fallback_logger = logging.getLogger("procurement")


def _pool_status() -> str | None:
    try:
        from procurement.database import engine

        return engine.pool.status()
    except (ImportError, AttributeError, NotImplementedError):
        return None


def _logger_for(request: Request) -> logging.Logger:
    return getattr(request.app.state, "logger", None) or _fallback_logger


def _request_id(request: Request) -> str:
    return (
        getattr(request.state, "request_id", None)
        or request.headers.get("x-request-id")
        or str(uuid.uuid4())
    )


def uptime_seconds() -> float:
    return max(0.0, time.monotonic() - _APP_START_MONOTONIC)


def utc_now_iso() -> str:
    return utc_now().replace(tzinfo=None).isoformat(timespec="seconds") + "Z"


def _cors_headers(request: Request) -> dict[str, str]:
    # Keeps real 500s from surfacing as opaque CORS errors in browsers.
    origin = request.headers.get("origin")
    if not origin:
        return {}

    from procurement.config import settings

    allowed = set(settings.cors_origins or [])
    if origin in allowed or "*" in allowed:
        return {
            "Access-Control-Allow-Origin": origin,
            "Access-Control-Allow-Credentials": "true",
            "Vary": "Origin",
        }
    return {}


def _field_name(loc) -> str:
    parts = [str(p) for p in loc if p not in ("body", "query", "path")]
    return ".".join(parts) or "body"


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report request validation failures as 400 naming the first bad field."""

    errors = exc.errors()
    first = errors[0] if errors else {}
    field = _field_name(first.get("loc", ()))
    message = first.get("msg", "Invalid value")

    if first.get("type") == "missing":
        detail = f"{field} is required"
    else:
        detail = f"Invalid {field}: {message}"

    _logger_for(request).info(
        "request_validation_failed",
        extra={
            "request_id": _request_id(request),
            "path": request.url.path,
            "field": field,
        },
    )
    return JSONResponse(status_code=400, content={"success": False, "detail": detail})


async def store_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    request_id = _request_id(request)
    _logger_for(request).exception(
        "store_error",
        extra={
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "exception_type": type(exc).__name__,
        },
    )

    headers = {"X-Request-ID": request_id}
    headers.update(_cors_headers(request))
    return JSONResponse(
        status_code=500,
        content={"success": False, "detail": str(exc), "request_id": request_id},
        headers=headers,
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Global exception handler that returns a structured error response.

    Internal details are logged with the request id and never returned to
    the client.
    """
    request_id = _request_id(request)

    extra = {
        "request_id": request_id,
        "method": request.method,
        "path": request.url.path,
        "exception_type": type(exc).__name__,
    }
    _logger_for(request).exception("unhandled_exception", extra=extra)

    headers = {"X-Request-ID": request_id}
    headers.update(_cors_headers(request))

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "detail": "Internal server error. Please try again later.",
            "request_id": request_id,
            "code": "INTERNAL_SERVER_ERROR",
        },
        headers=headers,
    )


async def request_logging_middleware(request: Request, call_next: Callable) -> Response:
    """Request-level logging middleware.

    Adds/propagates X-Request-ID and measures request duration.
    Does not log request/response bodies.
    """

    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.state.request_id = request_id
    logger = _logger_for(request)

    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
    except SATimeoutError as exc:
        duration_ms = (time.perf_counter() - start) * 1000.0
        logger.error(
            "db_pool_timeout",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "duration_ms": round(duration_ms, 2),
                "pool_status": _pool_status(),
                "error": str(exc),
            },
        )
        raise
    except Exception:
        duration_ms = (time.perf_counter() - start) * 1000.0
        extra = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "duration_ms": round(duration_ms, 2),
        }
        # Also log to uvicorn.error so tracebacks survive uvicorn's logging config.
        try:
            logger.exception("http_request_failed", extra=extra)
        finally:
            logging.getLogger("uvicorn.error").exception("http_request_failed", extra=extra)
        raise

    duration_ms = (time.perf_counter() - start) * 1000.0

    if duration_ms >= _SLOW_REQUEST_MS:
        logger.info(
            "slow_request",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "duration_ms": round(duration_ms, 2),
                "pool_status": _pool_status(),
            },
        )

    # Avoid noisy logging for liveness endpoints.
    if request.url.path not in {"/health", "/healthz"}:
        logger.info(
            "http_request",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )

    response.headers.setdefault("X-Request-ID", request_id)
    return response
