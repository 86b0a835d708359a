"""
Application Middleware for the EcoSnap API.

This module defines the middleware handling cross-cutting request concerns,
plus the handler that reshapes FastAPI's request validation errors.

Key Middleware Components:
- `CorrelationMiddleware`: Assigns a correlation ID to every request (taken
  from `X-Correlation-ID` / `X-Request-ID` when the client sends one), makes
  it available to logging, and echoes it in the response.
- `ErrorHandlingMiddleware`: Turns `EcoSnapAPIException` subclasses into
  JSON error responses with the mapped status code, and any other exception
  into a generic 500 response.
- `PerformanceMiddleware`: Logs each request with its duration, adds the
  `X-Process-Time` header and warns about slow requests.
- `register_exception_handlers`: Installs handlers that render application
  errors and schema violations (400 with per-field details) in the same
  error envelope. `ErrorHandlingMiddleware` stays as the last resort for
  anything raised outside the routing layer.

Architectural Design:
- Layered Processing Pipeline: `CorrelationMiddleware` is outermost so the
  correlation ID exists before anything else logs.
- Starlette's `BaseHTTPMiddleware`: All middleware build on it.
"""

import time
import uuid
from typing import Any, Callable, Dict, Optional

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from .exceptions import EcoSnapAPIException, to_http_exception
from .logging_config import get_logger, set_correlation_id

logger = get_logger("core.middleware")

SLOW_REQUEST_SECONDS = 1.0


def create_error_response(
    request: Request,
    status_code: int,
    error_type: str,
    code: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "type": error_type,
                "code": code,
                "message": message,
                "details": details or {},
                "correlation_id": getattr(request.state, "correlation_id", None),
            }
        },
    )


class CorrelationMiddleware(BaseHTTPMiddleware):
    """Middleware to add correlation IDs to requests"""

    def __init__(self, app: ASGIApp):
        super().__init__(app)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = (
            request.headers.get("X-Correlation-ID")
            or request.headers.get("X-Request-ID")
            or str(uuid.uuid4())
        )

        set_correlation_id(correlation_id)
        request.state.correlation_id = correlation_id

        response = await call_next(request)
        response.headers["X-Correlation-ID"] = correlation_id
        return response


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Middleware for centralized error handling"""

    def __init__(self, app: ASGIApp):
        super().__init__(app)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)

        except EcoSnapAPIException as e:
            http_exc = to_http_exception(e)
            log = logger.error if http_exc.status_code >= 500 else logger.warning
            log(
                f"Application error: {str(e)}",
                extra={
                    "error_type": type(e).__name__,
                    "error_code": e.error_code,
                    "path": request.url.path,
                    "method": request.method,
                },
            )
            return create_error_response(
                request,
                http_exc.status_code,
                type(e).__name__,
                e.error_code,
                e.message,
                e.details,
            )

        except Exception as e:
            logger.error(
                f"Unexpected error: {str(e)}",
                extra={
                    "error_type": type(e).__name__,
                    "path": request.url.path,
                    "method": request.method,
                },
                exc_info=True,
            )
            return create_error_response(
                request,
                500,
                "InternalServerError",
                "INTERNAL_ERROR",
                "An unexpected error occurred",
            )


class PerformanceMiddleware(BaseHTTPMiddleware):
    """Middleware for request timing and logging"""

    def __init__(self, app: ASGIApp):
        super().__init__(app)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()

        response = await call_next(request)

        process_time = time.time() - start_time
        process_time_ms = round(process_time * 1000, 2)
        response.headers["X-Process-Time"] = str(process_time_ms)

        logger.info(
            f"Request completed: {request.method} {request.url.path} - {response.status_code}",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "process_time_ms": process_time_ms,
                "client_ip": request.client.host if request.client else None,
            },
        )

        if process_time > SLOW_REQUEST_SECONDS:
            logger.warning(
                f"Slow request detected: {request.method} {request.url.path}",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "process_time_ms": process_time_ms,
                    "threshold_exceeded": True,
                },
            )

        return response


async def request_validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report schema violations as 400 VALIDATION_ERROR with field details"""
    fields = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
            "reason": error.get("msg", ""),
            "type": error.get("type", ""),
        }
        for error in exc.errors()
    ]
    logger.warning(
        f"Request validation failed: {request.method} {request.url.path}",
        extra={"path": request.url.path, "invalid_fields": [f["field"] for f in fields]},
    )
    return create_error_response(
        request,
        400,
        "ValidationError",
        "VALIDATION_ERROR",
        "Request validation failed",
        {"fields": fields},
    )


async def application_exception_handler(
    request: Request, exc: EcoSnapAPIException
) -> JSONResponse:
    http_exc = to_http_exception(exc)
    if http_exc.status_code >= 500:
        logger.error(f"Application error: {exc}", extra={"error_code": exc.error_code})
    else:
        logger.warning(f"Request rejected: {exc}", extra={"error_code": exc.error_code})
    return create_error_response(
        request,
        http_exc.status_code,
        type(exc).__name__,
        exc.error_code,
        exc.message,
        exc.details,
    )


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(EcoSnapAPIException, application_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
