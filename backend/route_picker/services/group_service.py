"""Route group actions: create, rename and delete named collections of routes."""

from typing import Any

import structlog
from sqlalchemy import delete as sql_delete
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from route_picker.core.errors import ActionError
from route_picker.core.session import SessionContext
from route_picker.helpers.authorization import is_authorized, resolve_session_user
from route_picker.helpers.form_validation import FormData, form_text, parse_id, validate_name
from route_picker.models.route import Route, RouteGroup

logger = structlog.get_logger(__name__)

INVALID_GROUP_ID = "Invalid group ID"


class GroupService:
    """Service for managing a user's route groups."""

    def __init__(self, db: AsyncSession) -> None:
        """
        Initialize the group service.

        Args:
            db: Database session
        """
        self.db = db

    async def get_group(self, group_id: int) -> RouteGroup | None:
        """Fetch a group by id regardless of owner."""
        result = await self.db.execute(select(RouteGroup).where(RouteGroup.id == group_id))
        return result.scalar_one_or_none()

    async def get_owned_group(self, session: SessionContext, group_id: int) -> RouteGroup:
        """
        Fetch a group the session owns.

        A missing group and a group owned by someone else both answer
        "Forbidden", so group ids of other users are not disclosed.

        Raises:
            ActionError: forbidden
        """
        group = await self.get_group(group_id)
        if group is None or not is_authorized(session, group.user_id):
            logger.warning("group_access_denied", group_id=group_id, user_id=session.user_id)
            raise ActionError.forbidden()
        return group

    async def create_group(self, session: SessionContext | None, form: FormData) -> dict[str, Any]:
        """
        Create a group owned by the caller.

        Form fields:
            name: Group name (trimmed, 1-100 characters)

        Returns:
            {"id": <new group id>}
        """
        user = await resolve_session_user(self.db, session)

        name = validate_name(
            form_text(form, "name") or "",
            empty_message="Name is required",
            too_long_message="Name too long",
        )

        group = RouteGroup(name=name, user_id=user.id)
        self.db.add(group)
        await self.db.commit()
        await self.db.refresh(group)

        logger.info("group_created", group_id=group.id, user_id=user.id)
        return {"id": group.id}

    async def update_group_name(self, session: SessionContext | None, form: FormData) -> None:
        """
        Rename a group the caller owns.

        Form fields:
            id: Group id
            name: New name (trimmed, 1-100 characters)
        """
        await resolve_session_user(self.db, session)
        assert session is not None  # narrowed by resolve_session_user

        raw_id = form_text(form, "id")
        raw_name = form_text(form, "name")
        if raw_id is None or raw_name is None:
            raise ActionError.validation("ID and name are required")

        name = validate_name(raw_name, empty_message="Name is required", too_long_message="Name too long")
        group = await self.get_owned_group(session, parse_id(raw_id, INVALID_GROUP_ID))

        group.name = name
        await self.db.commit()

        logger.info("group_renamed", group_id=group.id, user_id=session.user_id)

    async def delete_group(self, session: SessionContext | None, form: FormData) -> None:
        """
        Delete a group the caller owns.

        Member routes are kept and become ungrouped.

        Form fields:
            id: Group id
        """
        await resolve_session_user(self.db, session)
        assert session is not None

        if (raw_id := form_text(form, "id")) is None:
            raise ActionError.validation("ID is required")

        group = await self.get_owned_group(session, parse_id(raw_id, INVALID_GROUP_ID))
        group_id = group.id

        ungrouped = await self.db.execute(
            update(Route).where(Route.route_group_id == group_id).values(route_group_id=None)
        )
        await self.db.execute(sql_delete(RouteGroup).where(RouteGroup.id == group_id))
        await self.db.commit()

        logger.info(
            "group_deleted",
            group_id=group_id,
            user_id=session.user_id,
            ungrouped_routes=ungrouped.rowcount,
        )
