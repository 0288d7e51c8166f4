"""Form action endpoint: every mutation of routes, trips and groups."""

from collections.abc import Awaitable, Callable
from typing import Any

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from route_picker.core.auth import get_optional_session
from route_picker.core.database import get_db
from route_picker.core.errors import ActionError
from route_picker.core.session import SessionContext
from route_picker.core.telemetry import service_span
from route_picker.helpers.form_validation import FormData
from route_picker.schemas.actions import ActionResult
from route_picker.services.group_service import GroupService
from route_picker.services.route_service import RouteService
from route_picker.services.trip_service import TripService

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/actions", tags=["actions"])

ActionHandler = Callable[[SessionContext | None, FormData], Awaitable[dict[str, Any] | None]]

# Action name -> handler bound to a request's database session
ACTIONS: dict[str, Callable[[AsyncSession], ActionHandler]] = {
    "postRoute": lambda db: RouteService(db).post_route,
    "updateRouteName": lambda db: RouteService(db).update_route_name,
    "deleteRoute": lambda db: RouteService(db).delete_route,
    "moveRouteToGroup": lambda db: RouteService(db).move_route_to_group,
    "postTrip": lambda db: TripService(db).post_trip,
    "deleteTrip": lambda db: TripService(db).delete_trip,
    "createGroup": lambda db: GroupService(db).create_group,
    "updateGroupName": lambda db: GroupService(db).update_group_name,
    "deleteGroup": lambda db: GroupService(db).delete_group,
}


async def run_action(
    action: str,
    db: AsyncSession,
    session: SessionContext | None,
    form: FormData,
) -> ActionResult:
    """
    Run a named action and fold every outcome into an ActionResult.

    ActionError becomes a failed result carrying its kind and message. Any
    other exception is logged with its traceback, the transaction is rolled
    back, and the caller only sees the generic unexpected error.

    Args:
        action: Action name (e.g. "updateRouteName")
        db: Database session
        session: Session of the caller, None when unauthenticated
        form: Submitted form fields

    Returns:
        The action result; never raises for handler failures
    """
    if (factory := ACTIONS.get(action)) is None:
        logger.info("action_unknown", action=action)
        return ActionResult.fail(ActionError.not_found(f"Unknown action: {action}"))

    user_id = session.user_id if session is not None else None
    with service_span(f"action.{action}", "route-picker", action=action) as span:
        try:
            data = await factory(db)(session, form)
            result = ActionResult.ok(data)
        except ActionError as e:
            await db.rollback()
            logger.info("action_rejected", action=action, kind=e.kind.value, message=e.message, user_id=user_id)
            result = ActionResult.fail(e)
        except Exception:
            await db.rollback()
            logger.exception("action_failed", action=action, user_id=user_id)
            result = ActionResult.fail(ActionError.unexpected())
        span.set_attribute("action.success", result.success)
        if result.error is not None:
            span.set_attribute("action.error_kind", result.error.kind.value)

    return result


@router.post("/{action}", response_model=ActionResult)
async def dispatch_action(
    action: str,
    request: Request,
    session: SessionContext | None = Depends(get_optional_session),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    """
    Invoke a form action by name.

    The body is form-encoded (urlencoded or multipart). The HTTP status
    follows the result: 200 on success, otherwise the status of the error
    kind (400, 401, 403, 404 or 500).

    Args:
        action: Action name
        request: Incoming request carrying the form body
        session: Optional session of the caller
        db: Database session

    Returns:
        ActionResult serialized as JSON
    """
    form = await request.form()
    result = await run_action(action, db, session, form)
    return JSONResponse(status_code=result.status_code, content=result.model_dump(mode="json"))
