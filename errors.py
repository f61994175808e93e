"""
Application error hierarchy and FastAPI exception handlers.

AppError is the base for all typed errors. The global exception handler
converts AppError subclasses to consistent JSON responses.

ProviderError, CacheWriteError and ConfigurationError belong to the
background enrichment path. They are raised and caught below the task
boundary and only reach an HTTP response from the diagnostics routes.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from shared.logging import get_logger

log = get_logger(__name__)


class AppError(Exception):
    """Base application error. All typed errors inherit from this."""

    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        details: Optional[Any] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.field = field
        self.details = details

    def to_dict(self) -> dict:
        payload: dict = {"error": self.message, "code": self.error_code}
        if self.field is not None:
            payload["field"] = self.field
        if self.details is not None:
            payload["details"] = self.details
        return payload


class ValidationError(AppError):
    status_code = 400
    error_code = "validation_error"


class ProviderError(AppError):
    """A geo lookup failed (network, token, upstream status).

    *code* is the GeoErrorCode value the provider reports in its result.
    """

    status_code = 502
    error_code = "provider_error"

    def __init__(
        self,
        message: str,
        *,
        code: str = "LOOKUP_FAILED",
        retry_after: Optional[int] = None,
    ) -> None:
        super().__init__(message, details={"code": code})
        self.code = code
        self.retry_after = retry_after


class CacheWriteError(AppError):
    """The geo cache upsert failed. Never fatal to enrichment."""

    status_code = 500
    error_code = "cache_write_error"


class ConfigurationError(AppError):
    """Enrichment is disabled or the selected provider is misconfigured."""

    status_code = 503
    error_code = "configuration_error"


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI app."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        details = [
            {"loc": list(err.get("loc", ())), "msg": err.get("msg")}
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content={
                "error": "invalid request",
                "code": ValidationError.error_code,
                "details": details,
            },
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        # Sentry integration: if sentry_sdk is initialized it will auto-capture
        # unhandled exceptions before this handler fires.
        log.error(
            "unhandled_exception",
            path=request.url.path,
            error=str(exc),
            error_type=type(exc).__name__,
        )
        return JSONResponse(
            status_code=500,
            content={"error": "An internal server error occurred.", "code": "internal_error"},
        )
