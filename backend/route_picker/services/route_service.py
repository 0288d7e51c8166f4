"""Route actions: create, rename, regroup and delete a user's commute routes."""

from typing import Any

import structlog
from sqlalchemy import delete as sql_delete
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from route_picker.core.errors import ActionError
from route_picker.core.session import SessionContext
from route_picker.helpers.authorization import is_authorized, resolve_session_user
from route_picker.helpers.form_validation import FormData, form_text, parse_id, validate_name
from route_picker.models.route import Route, Trip
from route_picker.services.group_service import INVALID_GROUP_ID, GroupService

logger = structlog.get_logger(__name__)

INVALID_ROUTE_ID = "Invalid route ID"
ROUTE_NAME_TOO_LONG = "Route name cannot exceed 100 characters"


class RouteService:
    """Service for managing user routes."""

    def __init__(self, db: AsyncSession) -> None:
        """
        Initialize the route service.

        Args:
            db: Database session
        """
        self.db = db
        self.group_service = GroupService(db)

    async def get_route(self, route_id: int) -> Route | None:
        """Fetch a route by id regardless of owner."""
        result = await self.db.execute(select(Route).where(Route.id == route_id))
        return result.scalar_one_or_none()

    async def post_route(self, session: SessionContext | None, form: FormData) -> dict[str, Any]:
        """
        Create a route owned by the caller.

        A supplied group id that is malformed, unknown or owned by another user
        is ignored and the route is created ungrouped.

        Form fields:
            routeName: Route name (trimmed, 1-100 characters)
            routeGroupId: Optional group id

        Returns:
            {"id": <new route id>}
        """
        user = await resolve_session_user(self.db, session)

        name = validate_name(
            form_text(form, "routeName") or "",
            empty_message="Route name is required",
            too_long_message=ROUTE_NAME_TOO_LONG,
        )

        route_group_id = await self._owned_group_id_or_none(user.id, form_text(form, "routeGroupId"))

        route = Route(name=name, user_id=user.id, route_group_id=route_group_id)
        self.db.add(route)
        await self.db.commit()
        await self.db.refresh(route)

        logger.info("route_created", route_id=route.id, user_id=user.id, route_group_id=route_group_id)
        return {"id": route.id}

    async def _owned_group_id_or_none(self, user_id: str, raw_group_id: str | None) -> int | None:
        if raw_group_id is None:
            return None
        try:
            group_id = int(raw_group_id.strip())
        except ValueError:
            logger.info("route_group_ignored", reason="invalid_id", route_group_id=raw_group_id)
            return None

        group = await self.group_service.get_group(group_id)
        if group is None or group.user_id != user_id:
            logger.info("route_group_ignored", reason="not_owned", route_group_id=group_id, user_id=user_id)
            return None
        return group.id

    async def update_route_name(self, session: SessionContext | None, form: FormData) -> None:
        """
        Rename a route the caller owns.

        Input is validated before the session is consulted; each check
        short-circuits in this order: presence, numeric id, empty name,
        name length, session, route existence, ownership.

        Form fields:
            routeId: Route id
            newName: New name (trimmed, 1-100 characters)
        """
        raw_route_id = form_text(form, "routeId")
        raw_name = form_text(form, "newName")
        if raw_route_id is None or raw_name is None:
            raise ActionError.validation("Route ID and new name are required")

        route_id = parse_id(raw_route_id, INVALID_ROUTE_ID)
        name = validate_name(
            raw_name,
            empty_message="Route name cannot be empty",
            too_long_message=ROUTE_NAME_TOO_LONG,
        )

        user = await resolve_session_user(self.db, session)

        if (route := await self.get_route(route_id)) is None:
            raise ActionError.not_found("Route not found")
        if not is_authorized(session, route.user_id):
            logger.warning("route_rename_denied", route_id=route_id, user_id=user.id)
            raise ActionError.forbidden("You do not have permission to edit this route")

        route.name = name
        await self.db.commit()

        logger.info("route_renamed", route_id=route_id, user_id=user.id)

    async def delete_route(self, session: SessionContext | None, form: FormData) -> None:
        """
        Delete a route the caller owns, together with its trips.

        Form fields:
            id: Route id
        """
        if (raw_id := form_text(form, "id")) is None:
            raise ActionError.validation("No route id provided")
        route_id = parse_id(raw_id, INVALID_ROUTE_ID)

        user = await resolve_session_user(self.db, session)

        if (route := await self.get_route(route_id)) is None:
            raise ActionError.not_found("Route not found")
        if not is_authorized(session, route.user_id):
            logger.warning("route_delete_denied", route_id=route_id, user_id=user.id)
            raise ActionError.forbidden("You do not have permission to delete this route")

        trips = await self.db.execute(sql_delete(Trip).where(Trip.route_id == route_id))
        await self.db.execute(sql_delete(Route).where(Route.id == route_id))
        await self.db.commit()

        logger.info("route_deleted", route_id=route_id, user_id=user.id, deleted_trips=trips.rowcount)

    async def move_route_to_group(self, session: SessionContext | None, form: FormData) -> None:
        """
        Put a route into one of the caller's groups, or take it out of its group.

        Form fields:
            routeId: Route id
            groupId: Target group id; empty or absent ungroups the route
        """
        user = await resolve_session_user(self.db, session)
        assert session is not None

        if (raw_route_id := form_text(form, "routeId")) is None:
            raise ActionError.validation("Route ID is required")
        route_id = parse_id(raw_route_id, INVALID_ROUTE_ID)

        route = await self.get_route(route_id)
        if route is None or not is_authorized(session, route.user_id):
            logger.warning("route_move_denied", route_id=route_id, user_id=user.id)
            raise ActionError.forbidden()

        target_group_id: int | None = None
        if (raw_group_id := form_text(form, "groupId")) is not None and raw_group_id.strip():
            group = await self.group_service.get_owned_group(session, parse_id(raw_group_id, INVALID_GROUP_ID))
            target_group_id = group.id

        route.route_group_id = target_group_id
        await self.db.commit()

        logger.info("route_moved", route_id=route_id, route_group_id=target_group_id, user_id=user.id)
