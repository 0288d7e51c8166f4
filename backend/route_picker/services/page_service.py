"""Load path: everything the route picker page shows for one user."""

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from route_picker.core.session import SessionContext
from route_picker.models.route import Route, RouteGroup
from route_picker.models.user import User
from route_picker.schemas.page import PageData, RouteGroupResponse, RouteResponse

logger = structlog.get_logger(__name__)


class PageService:
    """Service assembling the page payload."""

    def __init__(self, db: AsyncSession) -> None:
        """
        Initialize the page service.

        Args:
            db: Database session
        """
        self.db = db

    async def load(self, session: SessionContext | None) -> PageData:
        """
        Load the caller's ungrouped routes and groups.

        Anonymous callers, and sessions whose user row no longer exists, get
        an empty page rather than an error.

        Args:
            session: Session of the caller, None when unauthenticated

        Returns:
            Ungrouped routes and groups, each ordered oldest first; trips newest first
        """
        if session is None:
            return PageData()

        user = await self.db.get(User, session.user_id)
        if user is None:
            logger.info("page_load_unknown_user", user_id=session.user_id)
            return PageData()

        routes = await self.list_ungrouped_routes(user.id)
        groups = await self.list_groups(user.id)

        return PageData(
            routes=[RouteResponse.model_validate(route) for route in routes],
            groups=[RouteGroupResponse.model_validate(group) for group in groups],
        )

    async def list_ungrouped_routes(self, user_id: str) -> list[Route]:
        """Routes of the user that are not in any group, with trips loaded."""
        result = await self.db.execute(
            select(Route)
            .options(selectinload(Route.trips))
            .where(Route.user_id == user_id, Route.route_group_id.is_(None))
            .order_by(Route.created_at, Route.id)
        )
        return list(result.scalars().all())

    async def list_routes(self, user_id: str) -> list[Route]:
        """All routes of the user, grouped or not, with trips loaded."""
        result = await self.db.execute(
            select(Route)
            .options(selectinload(Route.trips))
            .where(Route.user_id == user_id)
            .order_by(Route.created_at, Route.id)
        )
        return list(result.scalars().all())

    async def list_groups(self, user_id: str) -> list[RouteGroup]:
        """Groups of the user with member routes and their trips loaded."""
        result = await self.db.execute(
            select(RouteGroup)
            .options(selectinload(RouteGroup.routes).selectinload(Route.trips))
            .where(RouteGroup.user_id == user_id)
            .order_by(RouteGroup.created_at, RouteGroup.id)
        )
        return list(result.scalars().all())
