"""Custom exceptions and error handling utilities."""
from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from typing import Optional

from sessionlens.utils.logger import logger


class AppException(Exception):
    """Base exception for application errors."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(AppException):
    """Raised when a resource is not found."""
    status_code = status.HTTP_404_NOT_FOUND


class ValidationError(AppException):
    """Raised when validation fails."""
    status_code = status.HTTP_400_BAD_REQUEST


class StorageError(AppException):
    """Raised when the session store cannot be read or written."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


def not_found_error(resource: str, identifier: Optional[str] = None) -> NotFoundError:
    """
    Create a standardized not-found error.

    Args:
        resource: Name of the resource (e.g., "Session")
        identifier: Optional identifier that was not found

    Returns:
        NotFoundError with a readable message
    """
    message = f"{resource} not found"
    if identifier:
        message += f": {identifier}"
    return NotFoundError(message)


def handle_database_error(error: Exception, operation: str) -> StorageError:
    """
    Convert database errors to a storage error.

    Args:
        error: The database error
        operation: Description of the operation that failed

    Returns:
        StorageError describing the failed operation
    """
    return StorageError(f"Database error during {operation}: {error}")


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Render application errors as an ``{"error": ...}`` body."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies are client errors, reported like ValidationError."""
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"Invalid request: {location} {first.get('msg', '')}".strip()
    else:
        message = "Invalid request"
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": message})
