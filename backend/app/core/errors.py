"""Error taxonomy for the schedule service and the handlers that render it."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.core.context import restore_user_id

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "Internal server error"


class ScheduleServiceError(Exception):
    """Base class for errors that map onto a `{success: false, error}` response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def describe(self) -> str:
        return self.message


class ValidationError(ScheduleServiceError):
    """Missing or malformed input."""

    status_code = status.HTTP_400_BAD_REQUEST


class ConflictError(ScheduleServiceError):
    """The user already has an active schedule."""

    status_code = status.HTTP_400_BAD_REQUEST


class ExternalServiceError(ScheduleServiceError):
    """The generative-AI endpoint failed or returned nothing usable."""

    def __init__(self, message: str, upstream_status: Optional[int] = None):
        super().__init__(message)
        self.upstream_status = upstream_status


class ParseError(ScheduleServiceError):
    """The model response did not contain a recoverable schedule."""

    hint = "Please try rephrasing your request."

    def describe(self) -> str:
        return f"{self.message}. {self.hint}"


class PersistenceError(ScheduleServiceError):
    """A data-store read or write failed."""


def error_body(message: str) -> Dict[str, Any]:
    return {"success": False, "error": message}


async def _schedule_error_handler(request: Request, exc: ScheduleServiceError) -> JSONResponse:
    restore_user_id(request)
    if exc.status_code >= 500:
        logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
    else:
        logger.info("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.describe()))


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(_describe_validation_errors(exc)),
    )


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    restore_user_id(request)
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(INTERNAL_ERROR_MESSAGE),
    )


def _describe_validation_errors(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "invalid value")
    return f"{location}: {message}" if location else message


def register_exception_handlers(app: FastAPI) -> None:
    """Render service errors and request validation failures with the shared envelope."""
    app.add_exception_handler(ScheduleServiceError, _schedule_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
