"""Pydantic schemas for form action results."""

from typing import Any

from pydantic import BaseModel, ConfigDict

from route_picker.core.errors import ActionError, ErrorKind


class ActionErrorResponse(BaseModel):
    """Error half of a failed action result."""

    kind: ErrorKind
    message: str


class ActionResult(BaseModel):
    """
    Result of any form action.

    Exactly one of `data` (on success) or `error` (on failure) is meaningful;
    `success` discriminates the two.
    """

    model_config = ConfigDict(frozen=True)

    success: bool
    data: dict[str, Any] | None = None
    error: ActionErrorResponse | None = None

    @classmethod
    def ok(cls, data: dict[str, Any] | None = None) -> "ActionResult":
        """Build a successful result."""
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: ActionError) -> "ActionResult":
        """Build a failed result from an ActionError."""
        return cls(success=False, error=ActionErrorResponse(kind=error.kind, message=error.message))

    @property
    def status_code(self) -> int:
        """HTTP status to send this result with."""
        if self.success or self.error is None:
            return 200
        return self.error.kind.status_code
