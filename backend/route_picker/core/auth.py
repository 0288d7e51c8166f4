"""Session token verification and the session dependencies."""

from datetime import UTC, datetime, timedelta
from typing import Any
from urllib.parse import urlunparse

import httpx
import structlog
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from route_picker.core.config import require_config, settings
from route_picker.core.session import SessionContext

logger = structlog.get_logger(__name__)

# Validate required auth configuration on module load
require_config("AUTH_DOMAIN", "AUTH_API_AUDIENCE", "AUTH_ALGORITHMS")

# Mock JWKS for DEBUG mode (populated by tests)
_mock_jwks: dict[str, Any] | None = None


def set_mock_jwks(jwks: dict[str, Any]) -> None:
    """
    Set mock JWKS for DEBUG mode testing.

    This should only be called by test fixtures in DEBUG mode.

    Args:
        jwks: JWKS dictionary with test public keys

    Raises:
        RuntimeError: If called when DEBUG=False
    """
    if not settings.DEBUG:
        msg = "set_mock_jwks() can only be called in DEBUG mode"
        raise RuntimeError(msg)
    global _mock_jwks  # noqa: PLW0603
    _mock_jwks = jwks


# Actions answer 401 through their own result, so a missing header is not fatal here
security = HTTPBearer(auto_error=False)

# JWKS cache (JSON Web Key Set of the identity provider)
_jwks_cache: dict[str, Any] | None = None
_jwks_cache_time: datetime | None = None
_jwks_cache_ttl = timedelta(hours=1)


def clear_jwks_cache() -> None:
    """Forget the cached JWKS so the next verification refetches it."""
    global _jwks_cache, _jwks_cache_time  # noqa: PLW0603
    _jwks_cache = None
    _jwks_cache_time = None


async def get_jwks(domain: str) -> dict[str, Any]:
    """
    Fetch the identity provider's JWKS.

    This is used to verify JWT signatures. Results are cached for 1 hour.

    Args:
        domain: Identity provider domain (e.g., 'auth.example.com')

    Returns:
        JWKS dictionary containing public keys

    Raises:
        HTTPException: If JWKS cannot be fetched
    """
    global _jwks_cache, _jwks_cache_time  # noqa: PLW0603

    now = datetime.now(UTC)
    if (
        _jwks_cache is not None
        and "keys" in _jwks_cache
        and _jwks_cache_time is not None
        and now - _jwks_cache_time < _jwks_cache_ttl
    ):
        return _jwks_cache

    try:
        async with httpx.AsyncClient() as client:
            jwks_url = urlunparse(("https", domain, "/.well-known/jwks.json", "", "", ""))
            response = await client.get(jwks_url, timeout=10.0)
            response.raise_for_status()
            _jwks_cache = response.json()
            _jwks_cache_time = now
            return _jwks_cache
    except httpx.HTTPError as e:
        logger.error("jwks_fetch_failed", domain=domain, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Unable to fetch signing keys from the identity provider",
        ) from e


async def decode_token(token: str) -> dict[str, Any]:
    """
    Verify a session token and return its claims.

    Args:
        token: Encoded RS256 JWT

    Returns:
        JWT payload dictionary containing claims (e.g., 'sub', 'email', 'exp')

    Raises:
        HTTPException: 401 if the token is invalid; 500/503 if keys are unavailable
    """
    try:
        unverified_header = jwt.get_unverified_header(token)
        kid = unverified_header.get("kid")

        if not kid:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Token missing 'kid' in header",
            )

        if settings.DEBUG and _mock_jwks is not None:
            jwks = _mock_jwks
        elif settings.DEBUG:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Mock JWKS not configured for DEBUG mode",
            )
        else:
            jwks = await get_jwks(settings.AUTH_DOMAIN)

        matching_key = next((key for key in jwks.get("keys", []) if key.get("kid") == kid), None)

        if not matching_key:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Unable to find appropriate signing key",
            )

        required_fields = ["kty", "kid", "use", "n", "e"]
        missing_fields = [field for field in required_fields if field not in matching_key]
        if missing_fields:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"JWKS key is missing required fields: {', '.join(missing_fields)}",
            )

        rsa_key = {field: matching_key[field] for field in required_fields}

        issuer = urlunparse(("https", settings.AUTH_DOMAIN, "/", "", "", ""))
        return jwt.decode(
            token,
            rsa_key,
            algorithms=settings.AUTH_ALGORITHMS,
            audience=settings.AUTH_API_AUDIENCE,
            issuer=issuer,
        )

    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid authentication credentials: {e!s}",
        ) from e


async def verify_jwt(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> dict[str, Any]:
    """
    Require a valid bearer token.

    Returns:
        JWT payload dictionary

    Raises:
        HTTPException: 401 if the header is missing or the token is invalid
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return await decode_token(credentials.credentials)


def session_from_claims(payload: dict[str, Any]) -> SessionContext:
    """
    Build the session context from verified claims.

    Raises:
        HTTPException: 401 if the token carries no subject
    """
    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token missing 'sub' claim",
        )
    return SessionContext(
        user_id=str(user_id),
        email=payload.get("email"),
        provider=payload.get("provider"),
        token_id=payload.get("jti"),
    )


async def require_session(payload: dict[str, Any] = Depends(verify_jwt)) -> SessionContext:
    """Session of the caller; 401 without a valid token."""
    return session_from_claims(payload)


async def get_optional_session(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> SessionContext | None:
    """
    Session of the caller, or None.

    A missing token and an invalid token both yield None; the latter is
    logged. Handlers then answer 401 through their own result.
    """
    if credentials is None:
        return None
    try:
        return session_from_claims(await decode_token(credentials.credentials))
    except HTTPException as e:
        if e.status_code != status.HTTP_401_UNAUTHORIZED:
            raise
        logger.warning("session_token_rejected", reason=e.detail)
        return None
