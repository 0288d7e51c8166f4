"""Trip actions: record and remove timed journeys along a route."""

from typing import Any

import structlog
from sqlalchemy import delete as sql_delete
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from route_picker.core.errors import ActionError
from route_picker.core.session import SessionContext
from route_picker.helpers.authorization import is_authorized, resolve_session_user
from route_picker.helpers.form_validation import (
    FormData,
    form_text,
    parse_id,
    parse_json_field,
    parse_timestamp,
)
from route_picker.models.route import Route, Trip
from route_picker.services.route_service import INVALID_ROUTE_ID

logger = structlog.get_logger(__name__)

JSON_FIELDS = ("startLocation", "endLocation", "path")


class TripService:
    """Service for recording trips on a user's routes."""

    def __init__(self, db: AsyncSession) -> None:
        """
        Initialize the trip service.

        Args:
            db: Database session
        """
        self.db = db

    async def get_trip(self, trip_id: int) -> Trip | None:
        """Fetch a trip with its owning route loaded."""
        result = await self.db.execute(select(Trip).options(joinedload(Trip.route)).where(Trip.id == trip_id))
        return result.scalar_one_or_none()

    async def post_trip(self, session: SessionContext | None, form: FormData) -> dict[str, Any]:
        """
        Record a trip on a route the caller owns.

        Form fields:
            startTime: Date-like string
            endTime: Date-like string
            routeId: Route id
            startLocation: Optional JSON document
            endLocation: Optional JSON document
            path: Optional JSON document

        Returns:
            {"id": <new trip id>}
        """
        raw_start = form_text(form, "startTime")
        raw_end = form_text(form, "endTime")
        raw_route_id = form_text(form, "routeId")
        if raw_start is None or raw_end is None or raw_route_id is None:
            raise ActionError.validation("Start time, end time and route ID are required")

        try:
            start_time = parse_timestamp(raw_start)
            end_time = parse_timestamp(raw_end)
        except ValueError:
            raise ActionError.validation("Invalid date provided") from None

        route_id = parse_id(raw_route_id, INVALID_ROUTE_ID)
        documents = {field: parse_json_field(form, field) for field in JSON_FIELDS}

        user = await resolve_session_user(self.db, session)

        result = await self.db.execute(select(Route).where(Route.id == route_id))
        if (route := result.scalar_one_or_none()) is None:
            raise ActionError.not_found("Route not found")
        if not is_authorized(session, route.user_id):
            logger.warning("trip_create_denied", route_id=route_id, user_id=user.id)
            raise ActionError.forbidden()

        trip = Trip(
            route_id=route.id,
            start_time=start_time,
            end_time=end_time,
            start_location=documents["startLocation"],
            end_location=documents["endLocation"],
            path=documents["path"],
        )
        self.db.add(trip)
        await self.db.commit()
        await self.db.refresh(trip)

        logger.info(
            "trip_recorded",
            trip_id=trip.id,
            route_id=route.id,
            user_id=user.id,
            duration_seconds=(end_time - start_time).total_seconds(),
        )
        return {"id": trip.id}

    async def delete_trip(self, session: SessionContext | None, form: FormData) -> None:
        """
        Delete a trip on a route the caller owns.

        Form fields:
            id: Trip id
        """
        if (raw_id := form_text(form, "id")) is None:
            raise ActionError.validation("No trip id provided")
        trip_id = parse_id(raw_id, "Invalid trip ID")

        user = await resolve_session_user(self.db, session)

        if (trip := await self.get_trip(trip_id)) is None:
            raise ActionError.not_found("Trip not found")
        if not is_authorized(session, trip.route.user_id):
            logger.warning("trip_delete_denied", trip_id=trip_id, user_id=user.id)
            raise ActionError.forbidden()

        await self.db.execute(sql_delete(Trip).where(Trip.id == trip_id))
        await self.db.commit()

        logger.info("trip_deleted", trip_id=trip_id, route_id=trip.route_id, user_id=user.id)
