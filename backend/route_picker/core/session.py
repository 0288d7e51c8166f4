"""Session context passed explicitly to every action handler."""

from dataclasses import dataclass


@dataclass(frozen=True)
class SessionContext:
    """
    The authenticated caller of a request.

    Built from a verified session token. `user_id` is the identity
    provider's subject, which is also the primary key of the user row.
    """

    user_id: str
    email: str | None = None
    provider: str | None = None
    token_id: str | None = None
