"""
Exceptions raised by the arbiter operations, each tagged with an error kind.
"""

from enum import Enum


class ErrorKind(Enum):
    NOT_FOUND = "not_found"
    INVALID_ARGUMENT = "invalid_argument"
    FORBIDDEN = "forbidden"
    CONFLICT = "conflict"
    UNEXPECTED = "unexpected"


class ArbiterError(Exception):
    """Base exception for arbiter errors."""
    kind = ErrorKind.UNEXPECTED
    code = 500

    def __init__(self, message: str, user_message: str = None):
        super().__init__(message)
        self.user_message = user_message or message


class NotFoundError(ArbiterError):
    """Raised when a match, move or player does not exist."""
    kind = ErrorKind.NOT_FOUND
    code = 404


class InvalidArgumentError(ArbiterError):
    """Raised when request data is invalid for the operation."""
    kind = ErrorKind.INVALID_ARGUMENT
    code = 400


class ForbiddenError(ArbiterError):
    """Raised when a player acts on a match they are not part of."""
    kind = ErrorKind.FORBIDDEN
    code = 403


class ConflictError(ArbiterError):
    """Raised when the match state does not allow the operation."""
    kind = ErrorKind.CONFLICT
    code = 409


class UnexpectedError(ArbiterError):
    """Raised when storage or infrastructure fails."""

    def __init__(self, operation: str, details: str = None):
        super().__init__(
            f"Unexpected error during {operation}: {details}",
            "Unexpected error occurred. Please try again later."
        )
        self.operation = operation
