"""
Error taxonomy for the SSchool API.

Every failure a handler can produce is one of these classes. The HTTP status
travels with the exception, and the handlers registered by
``register_exception_handlers`` render all of them as ``{"error": message}``.

Usage:
    from sschool.core.exceptions import NotFoundError

    if user is None:
        raise NotFoundError("User not found")
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

logger = logging.getLogger(__name__)


class SchoolAPIError(Exception):
    """Base exception for all API errors"""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict[str, str]:
        return {"error": self.message}


# ============================================
# Request errors (400)
# ============================================

class ValidationError(SchoolAPIError):
    """Missing or malformed request field"""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class InvalidIdError(SchoolAPIError):
    """Identifier is not a well-formed store key"""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid ID"


# ============================================
# Authentication & Authorization Errors
# ============================================

class UnauthenticatedError(SchoolAPIError):
    """No usable credentials on the request"""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Access denied. No valid token provided."


class TokenExpiredError(UnauthenticatedError):
    default_message = "Token has expired"


class InvalidTokenError(UnauthenticatedError):
    default_message = "Invalid token"


class UnauthorizedError(SchoolAPIError):
    """Role gate reached without a resolved identity"""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized - No user found"


class ForbiddenError(SchoolAPIError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden"


# ============================================
# Resource Errors
# ============================================

class NotFoundError(SchoolAPIError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class ConflictError(SchoolAPIError):
    """Duplicate unique key"""

    status_code = status.HTTP_409_CONFLICT
    default_message = "Resource already exists"


class InternalError(SchoolAPIError):
    """Unexpected store or runtime failure"""


def _format_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
    message = first.get("msg", "Invalid value")
    if location:
        return f"Invalid value for {'.'.join(location)}: {message}"
    return message


def register_exception_handlers(app: FastAPI) -> None:
    """Render every error in the ``{"error": message}`` envelope"""

    @app.exception_handler(SchoolAPIError)
    async def school_api_error_handler(request: Request, exc: SchoolAPIError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}", exc_info=exc)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": _format_validation_error(exc)},
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error"},
        )
