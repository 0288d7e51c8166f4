"""Authentication API endpoints."""

from datetime import UTC, datetime
from typing import Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, ConfigDict
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from route_picker.core.auth import require_session, session_from_claims, verify_jwt
from route_picker.core.config import settings
from route_picker.core.database import get_db
from route_picker.core.session import SessionContext
from route_picker.services.auth_service import AuthService

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


class UserResponse(BaseModel):
    """
    User information response.

    Note: auth_provider is intentionally excluded.
    """

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    name: str | None
    email_verified: bool
    image: str | None
    created_at: datetime
    updated_at: datetime


class AuthReadinessResponse(BaseModel):
    """Auth system readiness check response."""

    ready: bool
    message: str | None = None


def _client_ip(request: Request) -> str | None:
    """First hop of X-Forwarded-For, falling back to the socket peer."""
    if forwarded_for := request.headers.get("x-forwarded-for"):
        return forwarded_for.split(",")[0].strip()
    return request.client.host if request.client else None


def _token_expiry(payload: dict[str, Any]) -> datetime | None:
    exp = payload.get("exp")
    if isinstance(exp, int | float):
        return datetime.fromtimestamp(exp, tz=UTC)
    return None


@router.get("/ready", response_model=AuthReadinessResponse)
async def auth_readiness_check(
    db: AsyncSession = Depends(get_db),
) -> AuthReadinessResponse:
    """
    Check if the authentication system is ready to accept sign-ins.

    Note: This endpoint does NOT require authentication, as it's used by
    the frontend before the sign-in flow begins.
    """
    try:
        await db.execute(text("SELECT 1"))
        return AuthReadinessResponse(ready=True)

    except (SQLAlchemyError, OSError) as e:
        logger.warning("auth_not_ready", error=str(e))
        return AuthReadinessResponse(
            ready=False,
            message="Database connection failed",
        )


@router.post("/sign-in", response_model=UserResponse)
async def sign_in(
    request: Request,
    payload: dict[str, Any] = Depends(verify_jwt),
    db: AsyncSession = Depends(get_db),
) -> UserResponse:
    """
    Sign-in callback for a freshly issued session token.

    Creates the user on first sign-in, links the provider account and
    records the session with the client's address and user agent.

    Returns:
        Profile of the signed-in user

    Raises:
        HTTPException: 400 if the token carries no email; 401 if it is invalid;
            409 if the email belongs to a user with a different subject
    """
    session = session_from_claims(payload)
    if not session.email:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Token missing 'email' claim",
        )

    provider = session.provider or settings.AUTH_DEFAULT_PROVIDER
    service = AuthService(db)
    try:
        user = await service.get_or_create_user(
            session.user_id,
            session.email,
            auth_provider=provider,
            name=payload.get("name"),
            email_verified=bool(payload.get("email_verified", False)),
            image=payload.get("picture"),
        )
    except IntegrityError:
        # Another subject, usually another provider, already signed up with this email
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="This email address is already registered to another account.",
        ) from None
    await service.link_account(user, provider_id=provider, account_id=session.user_id)
    await service.record_session(
        user,
        token_id=session.token_id,
        expires_at=_token_expiry(payload),
        ip_address=_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )

    logger.info("user_signed_in", user_id=user.id, auth_provider=provider)
    return UserResponse.model_validate(user)


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    session: SessionContext = Depends(require_session),
    db: AsyncSession = Depends(get_db),
) -> UserResponse:
    """
    Get the signed-in user's profile.

    Raises:
        HTTPException: 401 if the user has never signed in
    """
    user = await AuthService(db).get_user_by_id(session.user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )
    return UserResponse.model_validate(user)
