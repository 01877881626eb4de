"""
Global exception handlers for the FastAPI application.

Every error response follows the same JSON envelope::

    {
        "error": true,
        "message": "<human-readable description>",
        "details": [...]          # validation failures only
    }

Domain exceptions live here too, so the service layer can signal HTTP
outcomes without importing FastAPI.
"""

import logging
from typing import Any, Dict, List

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from fundscreener.core.resilience import CircuitBreakerError

logger = logging.getLogger(__name__)


# ────────────────────────────────────────────────────────────────────────────
# Domain exceptions  (raised by service layer, caught by handlers below)
# ────────────────────────────────────────────────────────────────────────────


class AppException(Exception):
    """Base exception for all application-level errors."""

    def __init__(self, status_code: int, message: str, details: Any = None):
        self.status_code = status_code
        self.message = message
        self.details = details
        super().__init__(message)


class NotFoundException(AppException):
    """Resource not found (404)."""

    def __init__(self, resource: str, identifier: Any, field: str = "id"):
        super().__init__(
            status_code=404,
            message=f"{resource} with {field} '{identifier}' not found",
        )


# ────────────────────────────────────────────────────────────────────────────
# Helpers
# ────────────────────────────────────────────────────────────────────────────


def format_validation_errors(errors: Any) -> List[Dict[str, str]]:
    """Flatten pydantic error dicts into ``{"field", "message"}`` pairs."""
    formatted = []
    for err in errors:
        loc = " -> ".join(str(part) for part in err.get("loc", ())) or "query"
        formatted.append({"field": loc, "message": err["msg"]})
    return formatted


def _error_body(message: str, details: Any = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"error": True, "message": message}
    if details is not None:
        body["details"] = details
    return body


# ────────────────────────────────────────────────────────────────────────────
# FastAPI exception handler registration
# ────────────────────────────────────────────────────────────────────────────


def add_exception_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI application instance."""

    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
        """Handle domain-specific exceptions raised by the service layer."""
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.message, exc.details),
        )

    @app.exception_handler(CircuitBreakerError)
    async def circuit_breaker_handler(
        request: Request, exc: CircuitBreakerError
    ) -> JSONResponse:
        """Fast-fail while the database circuit is open (503 + Retry-After)."""
        logger.warning("Rejected %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=503,
            headers={"Retry-After": str(max(int(exc.retry_after), 1))},
            content=_error_body(
                "Service temporarily unavailable: the database circuit is open. "
                "Please retry shortly."
            ),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        """Handle standard HTTP exceptions (e.g. 404 from path-not-found)."""
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.detail),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """
        Handle request-validation errors.

        Every endpoint is a GET driven by the query string, so a schema
        failure is a malformed request (400) rather than a semantic error.
        """
        details = format_validation_errors(exc.errors())
        logger.info(
            "Rejected %s %s: %d invalid parameter(s)",
            request.method,
            request.url.path,
            len(details),
        )
        return JSONResponse(
            status_code=400,
            content=_error_body("Invalid query parameters", details),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unexpected exceptions; logs the traceback, returns a generic 500."""
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content=_error_body("Internal Server Error. Please contact support."),
        )
