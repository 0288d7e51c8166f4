"""Action error types shared by every mutating handler."""

import enum

from fastapi import status


class ErrorKind(str, enum.Enum):
    """Category of an action failure; each maps to one HTTP status."""

    VALIDATION = "validation"
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    UNEXPECTED = "unexpected"

    @property
    def status_code(self) -> int:
        """HTTP status code reported for this kind of failure."""
        return _STATUS_CODES[self]


_STATUS_CODES: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.UNAUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.UNEXPECTED: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred"


class ActionError(Exception):
    """
    Raised by action handlers to fail the current action.

    The actions router turns it into a failed ActionResult whose HTTP status
    follows the error kind. The message is shown to the client verbatim, so it
    must never carry internal detail.
    """

    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message

    @property
    def status_code(self) -> int:
        return self.kind.status_code

    @classmethod
    def validation(cls, message: str) -> "ActionError":
        return cls(ErrorKind.VALIDATION, message)

    @classmethod
    def unauthenticated(cls, message: str = "Authentication required") -> "ActionError":
        return cls(ErrorKind.UNAUTHENTICATED, message)

    @classmethod
    def forbidden(cls, message: str = "Forbidden") -> "ActionError":
        return cls(ErrorKind.FORBIDDEN, message)

    @classmethod
    def not_found(cls, message: str) -> "ActionError":
        return cls(ErrorKind.NOT_FOUND, message)

    @classmethod
    def unexpected(cls) -> "ActionError":
        return cls(ErrorKind.UNEXPECTED, UNEXPECTED_ERROR_MESSAGE)

    def __repr__(self) -> str:
        return f"<ActionError(kind={self.kind.value}, message={self.message!r})>"
