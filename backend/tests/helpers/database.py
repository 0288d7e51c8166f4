"""Database helpers for assertions."""

from typing import Any, TypeVar

from route_picker.models import Route, RouteGroup, Trip, User
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

ModelT = TypeVar("ModelT", User, Route, RouteGroup, Trip)


async def fetch(db: AsyncSession, model: type[ModelT], object_id: Any) -> ModelT | None:  # noqa: ANN401
    """Load a row straight from the database, bypassing stale identity-map state."""
    result = await db.execute(
        select(model).where(model.id == object_id).execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()
