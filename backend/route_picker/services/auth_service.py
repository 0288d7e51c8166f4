"""Authentication service: users, linked accounts and recorded sessions."""

from datetime import UTC, datetime, timedelta

import structlog
from sqlalchemy import and_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from route_picker.core.config import settings
from route_picker.models.base import generate_string_id
from route_picker.models.user import Account, AuthSession, User

logger = structlog.get_logger(__name__)


class AuthService:
    """Service for authentication and user management."""

    def __init__(self, db: AsyncSession) -> None:
        """
        Initialize auth service.

        Args:
            db: Database session
        """
        self.db = db

    async def get_user_by_id(self, user_id: str) -> User | None:
        """
        Get user by id (the identity provider's subject).

        Args:
            user_id: User identifier

        Returns:
            User instance if found, None otherwise
        """
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def list_users(self, limit: int = 50, offset: int = 0) -> list[User]:
        """List users oldest first."""
        result = await self.db.execute(select(User).order_by(User.created_at, User.id).limit(limit).offset(offset))
        return list(result.scalars().all())

    async def create_user(
        self,
        user_id: str,
        email: str,
        auth_provider: str | None = None,
        name: str | None = None,
        email_verified: bool = False,
        image: str | None = None,
    ) -> User:
        """
        Create a new user.

        Args:
            user_id: Subject identifier from the identity provider
            email: Email address
            auth_provider: Provider name (default: settings.AUTH_DEFAULT_PROVIDER)
            name: Display name
            email_verified: Whether the provider verified the email
            image: Avatar URL

        Returns:
            Newly created User instance or existing User if already present

        Raises:
            IntegrityError: If the email belongs to a different user
        """
        user = User(
            id=user_id,
            email=email,
            auth_provider=auth_provider or settings.AUTH_DEFAULT_PROVIDER,
            name=name,
            email_verified=email_verified,
            image=image,
        )
        self.db.add(user)

        try:
            await self.db.commit()
            await self.db.refresh(user)
        except IntegrityError:
            # Race condition: user was created between check and insert
            await self.db.rollback()

            if (existing_user := await self.get_user_by_id(user_id)) is not None:
                return existing_user

            # Email taken by another subject
            logger.warning("user_create_conflict", user_id=user_id)
            raise

        logger.info("user_created", user_id=user.id, auth_provider=user.auth_provider)
        return user

    async def get_or_create_user(
        self,
        user_id: str,
        email: str,
        auth_provider: str | None = None,
        name: str | None = None,
        email_verified: bool = False,
        image: str | None = None,
    ) -> User:
        """
        Get existing user or create new one if it doesn't exist.

        This is the primary method used during sign-in.
        On first sign-in, a new user record is automatically created.

        Returns:
            User instance (existing or newly created)
        """
        user = await self.get_user_by_id(user_id)

        if user is None:
            user = await self.create_user(
                user_id,
                email,
                auth_provider=auth_provider,
                name=name,
                email_verified=email_verified,
                image=image,
            )

        return user

    async def link_account(self, user: User, provider_id: str, account_id: str) -> Account:
        """
        Link a provider account to the user, once per provider/account pair.

        Returns:
            The existing or newly created Account
        """
        query = select(Account).where(and_(Account.provider_id == provider_id, Account.account_id == account_id))
        result = await self.db.execute(query)
        if (account := result.scalar_one_or_none()) is not None:
            return account

        account = Account(provider_id=provider_id, account_id=account_id, user_id=user.id)
        self.db.add(account)

        try:
            await self.db.commit()
            await self.db.refresh(account)
        except IntegrityError:
            await self.db.rollback()
            result = await self.db.execute(query)
            return result.scalar_one()

        logger.info("account_linked", user_id=user.id, provider_id=provider_id)
        return account

    async def record_session(
        self,
        user: User,
        token_id: str | None,
        expires_at: datetime | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> AuthSession:
        """
        Record a sign-in session.

        A sign-in repeated with the same token returns the session already
        recorded for it.

        Args:
            user: Signed-in user
            token_id: `jti` of the session token; a random id is used when absent
            expires_at: Token expiry; defaults to now + SESSION_TTL_HOURS
            ip_address: Client address
            user_agent: Client user agent

        Returns:
            The recorded AuthSession
        """
        if token_id is not None:
            result = await self.db.execute(select(AuthSession).where(AuthSession.token == token_id))
            if (existing := result.scalar_one_or_none()) is not None:
                return existing

        session = AuthSession(
            user_id=user.id,
            token=token_id or generate_string_id(),
            expires_at=expires_at or datetime.now(UTC) + timedelta(hours=settings.SESSION_TTL_HOURS),
            ip_address=ip_address,
            user_agent=user_agent,
        )
        self.db.add(session)
        await self.db.commit()
        await self.db.refresh(session)

        logger.info("session_recorded", user_id=user.id, session_id=session.id, expires_at=session.expires_at)
        return session
