"""
Typed failures raised by the signing workflow.

Services raise these; controllers turn them into HTTP errors with
convert_to_http_exception. Nothing in the workflow retries on its own.
"""

from typing import Optional
from fastapi import HTTPException, status


class DocumentBaseException(Exception):
    """Base exception for all signing workflow errors."""
    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(DocumentBaseException):
    """Raised when an envelope, recipient, field or job does not exist."""
    pass


class InvalidStateError(DocumentBaseException):
    """Raised when the envelope or recipient state does not allow the action."""
    pass


class ValidationError(DocumentBaseException):
    """Raised when the request is well formed but incomplete (e.g. unsigned fields)."""
    pass


class AuthenticationError(DocumentBaseException):
    """Raised when a required second factor is missing or invalid."""
    pass


def convert_to_http_exception(exc: DocumentBaseException) -> HTTPException:
    """
    Convert a DocumentBaseException to an HTTPException with appropriate status code.
    """
    if isinstance(exc, NotFoundError):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, InvalidStateError):
        status_code = status.HTTP_409_CONFLICT
    elif isinstance(exc, ValidationError):
        status_code = status.HTTP_400_BAD_REQUEST
    elif isinstance(exc, AuthenticationError):
        status_code = status.HTTP_401_UNAUTHORIZED
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(
        status_code=status_code,
        detail={"message": exc.message, "details": exc.details}
    )
