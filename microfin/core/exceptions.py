"""
Error taxonomy and the handlers that render every error as ``{"error": message}``.
"""
import logging

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class MicrofinError(HTTPException):
    """Base class for all domain errors raised by services"""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"

    def __init__(self, message: str = None, headers: dict = None):
        super().__init__(
            status_code=self.status_code,
            detail=message or self.default_message,
            headers=headers
        )


class Unauthorized(MicrofinError):
    """Missing, invalid, expired or revoked token"""
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication required"

    def __init__(self, message: str = None):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class Forbidden(MicrofinError):
    """Role or ownership mismatch"""
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Access denied"


class NotFound(MicrofinError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class InvalidRequest(MicrofinError):
    """Missing or out-of-range fields"""
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class InvalidLoanParameters(InvalidRequest):
    default_message = "Invalid loan parameters"


class ConflictPrecondition(MicrofinError):
    """Delete blocked by existing children"""
    status_code = status.HTTP_409_CONFLICT
    default_message = "Operation blocked by dependent records"


def _format_validation_error(exc: RequestValidationError) -> str:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        message = error.get("msg", "Invalid value")
        messages.append(f"{location}: {message}" if location else message)
    return "; ".join(messages) or "Invalid request"


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None)
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": _format_validation_error(exc)}
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"}
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the JSON error handlers to the application"""
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
