"""Error Handlers — the error boundary installed after every route.

Invariants:
    - GatewayError → its own status with structured JSON (code, message, severity)
    - RequestValidationError → 400 with field-level error details
    - HTTPException (404, 405, explicit raises) → same status, same envelope shape
    - Exception (catch-all) → 500, never leaks internal details
    - Handlers are stateless: one request's failure never touches another's

Design Decisions:
    - Four-layer handler: domain (GatewayError), validation (Pydantic),
      framework HTTP errors, catch-all (Exception)
"""

import logging
from http import HTTPStatus
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from streamgate.core.errors import GatewayError, ErrorSeverity

logger = logging.getLogger(__name__)

_HTTP_ERROR_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    413: "PAYLOAD_TOO_LARGE",
    415: "UNSUPPORTED_MEDIA_TYPE",
    429: "TOO_MANY_REQUESTS",
    503: "SERVICE_UNAVAILABLE",
}


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""
    _register_gateway_error_handler(app)
    _register_validation_error_handler(app)
    _register_http_error_handler(app)
    _register_generic_error_handler(app)


def _register_gateway_error_handler(app: FastAPI) -> None:
    """Register streamgate domain/infrastructure error handler."""

    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError):
        """Handle all streamgate domain/infrastructure errors."""
        logger.error(
            f"GatewayError: {exc.message}",
            extra={"error_code": exc.code, "path": request.url.path},
        )
        exc.context.path = request.url.path
        return JSONResponse(
            status_code=exc.http_status, content=exc.to_response(),
        )


def _register_validation_error_handler(app: FastAPI) -> None:
    """Register Pydantic validation error handler."""

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError,
    ):
        """Handle Pydantic validation errors."""
        logger.warning(
            f"Validation error on {request.url.path}: {exc.errors()}",
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=_build_validation_error_response(exc),
        )


def _register_http_error_handler(app: FastAPI) -> None:
    """Register framework HTTP error handler (unknown routes, wrong methods)."""

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code >= 500:
            logger.error(f"HTTP {exc.status_code} on {request.url.path}: {exc.detail}")
        return JSONResponse(
            status_code=exc.status_code,
            content=build_http_error_response(exc.status_code, exc.detail),
            headers=getattr(exc, "headers", None),
        )


def _register_generic_error_handler(app: FastAPI) -> None:
    """Register catch-all error handler."""

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        """Catch-all — never leaks internal details."""
        logger.error(
            f"Unhandled exception on {request.url.path}: {exc}",
            exc_info=True,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=build_internal_error_response(),
        )


def build_internal_error_response() -> dict:
    return {
        "error": {
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred",
            "category": "internal",
            "severity": ErrorSeverity.CRITICAL.value,
        },
    }


def build_http_error_response(status_code: int, detail: Any) -> dict:
    """Envelope for framework HTTP errors; dict details are passed through."""
    if isinstance(detail, dict) and "error" in detail:
        return detail
    try:
        phrase = HTTPStatus(status_code).phrase
    except ValueError:
        phrase = "HTTP error"
    return {
        "error": {
            "code": _HTTP_ERROR_CODES.get(status_code, f"HTTP_{status_code}"),
            "message": detail if isinstance(detail, str) and detail else phrase,
            "category": "resource_not_found" if status_code == 404 else "http",
            "severity": (
                ErrorSeverity.CRITICAL.value if status_code >= 500
                else ErrorSeverity.ERROR.value
            ),
        },
    }


def _build_validation_error_response(exc: RequestValidationError) -> dict:
    """Build structured validation error response."""
    return {
        "error": {
            "code": "VALIDATION_ERROR",
            "message": "Invalid request data",
            "category": "validation",
            "severity": ErrorSeverity.ERROR.value,
            "details": [
                {
                    "field": ".".join(str(loc) for loc in e["loc"]),
                    "message": e["msg"],
                    "type": e["type"],
                }
                for e in exc.errors()
            ],
        },
    }
