"""Error Handlers — global exception handlers for the keyrelay API.

Invariants:
    - Every error response uses the KeyRelayError.to_response() envelope
      (code, message, category, severity, timestamp, context)
    - Capacity errors (quota category) logged at WARNING, everything else at ERROR
    - RequestValidationError → 400, envelope plus field-level details
    - Exception (catch-all) → 500, never leaks internal details

Design Decisions:
    - Validation and unexpected failures are expressed as KeyRelayError instances
      so one to_response() shapes all three handlers
    - Extracted from main.py to keep the app module small
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from keyrelay.core.errors import ErrorCategory, ErrorSeverity, KeyRelayError

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""
    app.add_exception_handler(KeyRelayError, keyrelay_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)


async def keyrelay_error_handler(request: Request, exc: KeyRelayError):
    level = (
        logging.WARNING if exc.category is ErrorCategory.QUOTA
        else logging.ERROR
    )
    logger.log(
        level,
        f"KeyRelayError: {exc.message}",
        extra={"error_code": exc.code, "path": request.url.path},
    )
    return JSONResponse(status_code=exc.http_status, content=exc.to_response())


async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = [
        {
            "field": ".".join(str(loc) for loc in e["loc"]),
            "message": e["msg"],
            "type": e["type"],
        }
        for e in exc.errors()
    ]
    logger.warning(
        f"Validation error on {request.url.path}: {len(details)} field(s)",
        extra={"error_code": "VALIDATION_ERROR", "path": request.url.path},
    )
    error = KeyRelayError(
        "Invalid request data", "VALIDATION_ERROR", ErrorCategory.VALIDATION,
        ErrorSeverity.WARNING, http_status=status.HTTP_400_BAD_REQUEST,
    )
    body = error.to_response()
    body["error"]["details"] = details
    return JSONResponse(status_code=error.http_status, content=body)


async def unexpected_error_handler(request: Request, exc: Exception):
    logger.error(
        f"Unhandled exception on {request.url.path}: {exc}",
        exc_info=True,
        extra={"error_code": "INTERNAL_ERROR", "path": request.url.path},
    )
    error = KeyRelayError(
        "An unexpected error occurred", "INTERNAL_ERROR", ErrorCategory.INTERNAL,
        ErrorSeverity.CRITICAL, http_status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    return JSONResponse(status_code=error.http_status, content=error.to_response())
