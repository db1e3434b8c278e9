"""
Exception handlers.

Convert every error that reaches the API boundary into the standard error
envelope. Domain errors keep their message and code; anything unexpected
is logged and answered with a generic 500.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from shared.exceptions import TrackwiseError
from modules.ratelimit.exceptions import RateLimitedError

from .models.errors import ErrorResponse, FieldError

logger = logging.getLogger(__name__)


def _envelope(status_code: int, body: ErrorResponse, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", exclude_none=True),
        headers=headers,
    )


async def handle_trackwise_error(request: Request, exc: TrackwiseError) -> JSONResponse:
    headers: dict[str, str] = {}
    if exc.status_code == 401:
        headers["WWW-Authenticate"] = "Bearer"
    if isinstance(exc, RateLimitedError):
        headers["Retry-After"] = str(exc.retry_after)

    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"{exc.code} on {request.method} {request.url.path}")

    return _envelope(
        exc.status_code,
        ErrorResponse(message=exc.message, code=exc.code, details=exc.details or None),
        headers or None,
    )


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = [
        FieldError(
            field=".".join(str(part) for part in error.get("loc", ()) if part != "body"),
            message=error.get("msg", "Invalid value"),
        )
        for error in exc.errors()
    ]
    message = fields[0].message if fields else "Validation failed"
    return _envelope(
        400,
        ErrorResponse(
            message=message,
            code="VALIDATION_ERROR",
            details={"errors": [field.model_dump() for field in fields]},
        ),
    )


async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _envelope(
        exc.status_code,
        ErrorResponse(message=str(exc.detail)),
        getattr(exc, "headers", None),
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return _envelope(500, ErrorResponse(message="Internal server error", code="INTERNAL_ERROR"))


def register_exception_handlers(app: FastAPI) -> None:
    """Install the envelope handlers on an application."""
    app.add_exception_handler(TrackwiseError, handle_trackwise_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(Exception, handle_unexpected_error)
