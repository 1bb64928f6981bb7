"""
Typed application errors.

Every error carries the HTTP status it maps to; the handlers registered in
``main.py`` turn them into the standard error envelope.
"""
from typing import Any, List, Optional


class AppError(Exception):
    """Base class for errors that surface to API callers."""

    status_code = 500
    default_message = "Something went wrong"

    def __init__(self, message: Optional[str] = None, errors: Optional[List[Any]] = None):
        self.message = message or self.default_message
        self.errors = errors or []
        super().__init__(self.message)


class ValidationError(AppError):
    """Malformed or missing input."""
    status_code = 400
    default_message = "Invalid request"


class UnauthorizedError(AppError):
    """Missing or invalid identity."""
    status_code = 401
    default_message = "Unauthorized request"


class ForbiddenError(AppError):
    """Authenticated but not allowed to act on the resource."""
    status_code = 403
    default_message = "You are not authorized to perform this action"


class NotFoundError(AppError):
    """Referenced entity does not exist."""
    status_code = 404
    default_message = "Resource not found"


class ConflictError(AppError):
    """Uniqueness violation."""
    status_code = 409
    default_message = "Resource already exists"


class FatalError(AppError):
    """Unexpected store or collaborator failure."""
    status_code = 500
    default_message = "Internal server error"
