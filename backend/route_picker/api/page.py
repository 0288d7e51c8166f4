"""Page load endpoint."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from route_picker.core.auth import get_optional_session
from route_picker.core.database import get_db
from route_picker.core.session import SessionContext
from route_picker.schemas.page import PageData
from route_picker.services.page_service import PageService

router = APIRouter(prefix="/page", tags=["page"])


@router.get("", response_model=PageData)
async def load_page(
    session: SessionContext | None = Depends(get_optional_session),
    db: AsyncSession = Depends(get_db),
) -> PageData:
    """
    Load the route picker page for the caller.

    Anonymous callers get empty lists rather than an error.

    Returns:
        Ungrouped routes and groups with their routes, each route with its trips
    """
    return await PageService(db).load(session)
