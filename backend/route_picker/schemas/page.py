"""Pydantic schemas for the page load payload."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class TripResponse(BaseModel):
    """Response schema for a recorded trip."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    start_time: datetime
    end_time: datetime | None
    start_location: Any
    end_location: Any
    path: Any
    route_id: int


class RouteResponse(BaseModel):
    """Response schema for a route with its trips, newest first."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    route_group_id: int | None
    created_at: datetime
    trips: list[TripResponse]


class RouteGroupResponse(BaseModel):
    """Response schema for a route group with its member routes."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    created_at: datetime
    routes: list[RouteResponse]


class PageData(BaseModel):
    """Everything the route picker page renders for the signed-in user."""

    routes: list[RouteResponse] = Field(default_factory=list, description="Routes not in any group")
    groups: list[RouteGroupResponse] = Field(default_factory=list)
