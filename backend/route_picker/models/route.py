"""Commute models: route groups, routes and the trips recorded along them."""

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import JSON, DateTime, ForeignKey, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from route_picker.models.base import BaseModel
from route_picker.models.user import User

# Route and group names share one length limit
NAME_MAX_LENGTH = 100


class RouteGroup(BaseModel):
    """Named collection of a user's routes."""

    __tablename__ = "route_group"

    name: Mapped[str] = mapped_column(
        String(NAME_MAX_LENGTH),
        nullable=False,
    )
    user_id: Mapped[str] = mapped_column(
        String(255),
        ForeignKey("user.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    # Relationships
    user: Mapped[User] = relationship(back_populates="route_groups")
    routes: Mapped[list["Route"]] = relationship(
        back_populates="route_group",
        passive_deletes=True,
        order_by=lambda: [Route.created_at, Route.id],
    )

    def __repr__(self) -> str:
        """String representation of the group."""
        return f"<RouteGroup(id={self.id}, name={self.name}, user_id={self.user_id})>"


class Route(BaseModel):
    """A named commute path being compared against alternatives."""

    __tablename__ = "route"

    name: Mapped[str] = mapped_column(
        String(NAME_MAX_LENGTH),
        nullable=False,
    )
    user_id: Mapped[str] = mapped_column(
        String(255),
        ForeignKey("user.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    route_group_id: Mapped[int | None] = mapped_column(
        ForeignKey("route_group.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Relationships
    user: Mapped[User] = relationship(back_populates="routes")
    route_group: Mapped[RouteGroup | None] = relationship(back_populates="routes")
    trips: Mapped[list["Trip"]] = relationship(
        back_populates="route",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by=lambda: [Trip.start_time.desc(), Trip.id.desc()],
    )

    __table_args__ = (Index("ix_route_user_id_route_group_id", "user_id", "route_group_id"),)

    def __repr__(self) -> str:
        """String representation of the route."""
        return f"<Route(id={self.id}, name={self.name}, route_group_id={self.route_group_id})>"


class Trip(BaseModel):
    """One timed traversal of a route."""

    __tablename__ = "trip"

    start_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )
    end_time: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    start_location: Mapped[Any] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
        server_default=text("'{}'"),
    )
    end_location: Mapped[Any] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
        server_default=text("'{}'"),
    )
    path: Mapped[Any] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
        server_default=text("'{}'"),
    )
    route_id: Mapped[int] = mapped_column(
        ForeignKey("route.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    route: Mapped[Route] = relationship(back_populates="trips")

    def __repr__(self) -> str:
        """String representation of the trip."""
        return f"<Trip(id={self.id}, route_id={self.route_id}, start_time={self.start_time})>"
