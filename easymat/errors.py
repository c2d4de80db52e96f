"""
errors.py — Application error taxonomy and JSON envelope handlers
==================================================================
Services raise AppError subclasses; the handlers registered by
``register_error_handlers`` turn every failure (application, request
validation, ORM, unexpected) into the common envelope:

    {"success": false, "error": {"code": ..., "message": ..., "details": [...]}}
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import DataError, DBAPIError, IntegrityError, NoResultFound, SQLAlchemyError, StatementError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .constants import RATE_LIMIT_RETRY_AFTER_SECONDS

logger = logging.getLogger("easymat.errors")


class AppError(Exception):
    """Base error carrying a machine-readable code and an HTTP status."""

    code = "INTERNAL_ERROR"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "An unexpected error occurred"

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[List[Dict[str, str]]] = None,
    ) -> None:
        self.message = message or self.message
        self.details = details
        super().__init__(self.message)

    def to_error(self) -> Dict[str, Any]:
        error: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            error["details"] = self.details
        return error

    def headers(self) -> Optional[Dict[str, str]]:
        return None


class ValidationFailedError(AppError):
    code = "VALIDATION_ERROR"
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid input data"


class NotFoundError(AppError):
    code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND
    message = "Resource not found"


class UnauthorizedError(AppError):
    code = "UNAUTHORIZED"
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Authentication required"

    def headers(self) -> Optional[Dict[str, str]]:
        return {"WWW-Authenticate": "Bearer"}


class ForbiddenError(AppError):
    code = "FORBIDDEN"
    status_code = status.HTTP_403_FORBIDDEN
    message = "Admin access required"


class DuplicateRatingError(AppError):
    code = "DUPLICATE_RATING"
    status_code = status.HTTP_400_BAD_REQUEST
    message = "You have already rated this vehicle today"


class DuplicateReportError(AppError):
    code = "DUPLICATE_REPORT"
    status_code = status.HTTP_400_BAD_REQUEST
    message = "You have already submitted a similar report recently"


class RateLimitExceededError(AppError):
    code = "RATE_LIMIT_EXCEEDED"
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    message = "Too many requests. Please try again later."

    def __init__(self, message: Optional[str] = None, retry_after: int = RATE_LIMIT_RETRY_AFTER_SECONDS) -> None:
        super().__init__(message)
        self.retry_after = retry_after

    def to_error(self) -> Dict[str, Any]:
        error = super().to_error()
        error["retryAfter"] = self.retry_after
        return error

    def headers(self) -> Optional[Dict[str, str]]:
        return {"Retry-After": str(self.retry_after)}


class InvalidFileTypeError(AppError):
    code = "INVALID_FILE_TYPE"
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Only JPEG, PNG, and WebP images are allowed"


class FileTooLargeError(AppError):
    code = "FILE_TOO_LARGE"
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Image must be less than 5MB"


class ConflictError(AppError):
    """Uniqueness conflicts; subclasses only change the code."""

    code = "CONFLICT"
    status_code = status.HTTP_409_CONFLICT
    message = "Resource already exists"


class UserExistsError(ConflictError):
    code = "USER_EXISTS"
    message = "User with this email already exists"


class VehicleExistsError(ConflictError):
    code = "VEHICLE_EXISTS"
    message = "Vehicle with this registration plate already exists"


class SaccoExistsError(ConflictError):
    code = "SACCO_EXISTS"
    message = "Sacco with this name already exists"


class InvalidStatusTransitionError(ConflictError):
    code = "INVALID_STATUS_TRANSITION"
    message = "Only pending reports can be moderated"


class DatabaseError(AppError):
    code = "DATABASE_ERROR"
    message = "Database operation failed"

    def __init__(self, message: Optional[str] = None, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        super().__init__(message)
        self.status_code = status_code


# ---------------------------------------------------------------------------
# Translation helpers
# ---------------------------------------------------------------------------

def validation_details(errors: List[Dict[str, Any]]) -> List[Dict[str, str]]:
    """Flatten pydantic error dicts to ``[{field, message}]``."""
    details = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path", "form")]
        details.append({"field": ".".join(loc), "message": err.get("msg", "Invalid value")})
    return details


def map_database_error(exc: SQLAlchemyError) -> DatabaseError:
    """Map an ORM/driver failure onto an HTTP status."""
    if isinstance(exc, IntegrityError):
        return DatabaseError("A record with these values already exists or violates a constraint",
                             status.HTTP_409_CONFLICT)
    if isinstance(exc, NoResultFound):
        return DatabaseError("Record not found", status.HTTP_404_NOT_FOUND)
    if isinstance(exc, DataError) or (isinstance(exc, StatementError) and not isinstance(exc, DBAPIError)):
        return DatabaseError("Invalid data for this operation", status.HTTP_400_BAD_REQUEST)
    return DatabaseError()


def error_response(exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.to_error()},
        headers=exc.headers(),
    )


_HTTP_CODES = {
    status.HTTP_401_UNAUTHORIZED: "UNAUTHORIZED",
    status.HTTP_403_FORBIDDEN: "FORBIDDEN",
    status.HTTP_404_NOT_FOUND: "NOT_FOUND",
    status.HTTP_405_METHOD_NOT_ALLOWED: "METHOD_NOT_ALLOWED",
}


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

async def _app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return error_response(exc)


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(ValidationFailedError(details=validation_details(exc.errors())))


async def _pydantic_validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return error_response(ValidationFailedError(details=validation_details(exc.errors())))


async def _database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database error on %s %s: %s", request.method, request.url.path, exc)
    return error_response(map_database_error(exc))


async def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    error = AppError(message=str(exc.detail))
    error.status_code = exc.status_code
    error.code = _HTTP_CODES.get(exc.status_code, "HTTP_ERROR")
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": error.to_error()},
        headers=getattr(exc, "headers", None),
    )


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(AppError())


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, _app_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(ValidationError, _pydantic_validation_handler)
    app.add_exception_handler(SQLAlchemyError, _database_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
