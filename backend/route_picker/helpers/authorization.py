"""Ownership checks used by every mutating action."""

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from route_picker.core.errors import ActionError
from route_picker.core.session import SessionContext
from route_picker.models.user import User

logger = structlog.get_logger(__name__)


def is_authorized(session: SessionContext | None, owner_id: str | None) -> bool:
    """
    Decide whether the session may act on a resource owned by owner_id.

    This is the only ownership rule in the application: a caller may touch a
    resource if and only if it is authenticated and owns it.

    Args:
        session: Session of the caller, None when unauthenticated
        owner_id: user_id of the resource owner, None when the resource is missing

    Returns:
        True to allow, False to deny
    """
    if session is None or owner_id is None:
        return False
    return session.user_id == owner_id


async def resolve_session_user(db: AsyncSession, session: SessionContext | None) -> User:
    """
    Resolve the session to an existing user row.

    Args:
        db: Database session
        session: Session of the caller

    Returns:
        The user the session belongs to

    Raises:
        ActionError: unauthenticated when there is no session or no user row
    """
    if session is None:
        raise ActionError.unauthenticated()

    result = await db.execute(select(User).where(User.id == session.user_id))
    if (user := result.scalar_one_or_none()) is None:
        logger.warning("session_user_not_found", user_id=session.user_id)
        raise ActionError.unauthenticated("User not found")

    return user
