"""User and identity-provider owned models."""

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from route_picker.models.base import StringIdModel

if TYPE_CHECKING:
    from route_picker.models.route import Route, RouteGroup


class User(StringIdModel):
    """User model for authenticated users.

    The primary key is the subject identifier issued by the identity provider.
    """

    __tablename__ = "user"

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
    )
    name: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    email_verified: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    image: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    auth_provider: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="oauth",
        server_default="oauth",
    )

    # Relationships
    sessions: Mapped[list["AuthSession"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    accounts: Mapped[list["Account"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    routes: Mapped[list["Route"]] = relationship(back_populates="user")
    route_groups: Mapped[list["RouteGroup"]] = relationship(back_populates="user")

    def __repr__(self) -> str:
        """String representation of the user."""
        return f"<User(id={self.id}, email={self.email}, auth_provider={self.auth_provider})>"


class AuthSession(StringIdModel):
    """A recorded sign-in session."""

    __tablename__ = "session"

    token: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        comment="Token identifier (jti) of the session token, never the token itself",
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    ip_address: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
    )
    user_agent: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    user_id: Mapped[str] = mapped_column(
        String(255),
        ForeignKey("user.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    user: Mapped[User] = relationship(back_populates="sessions")

    @property
    def is_expired(self) -> bool:
        """Check if the session has expired."""
        expires_at = self.expires_at
        # SQLite hands back naive datetimes; they are stored as UTC
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=UTC)
        return datetime.now(UTC) > expires_at

    def __repr__(self) -> str:
        """String representation of the session."""
        return f"<AuthSession(id={self.id}, user_id={self.user_id}, expires_at={self.expires_at})>"


class Account(StringIdModel):
    """Link between a user and an identity provider account."""

    __tablename__ = "account"

    account_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Account identifier on the provider side",
    )
    provider_id: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )
    user_id: Mapped[str] = mapped_column(
        String(255),
        ForeignKey("user.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    user: Mapped[User] = relationship(back_populates="accounts")

    __table_args__ = (UniqueConstraint("provider_id", "account_id", name="uq_account_provider_account"),)

    def __repr__(self) -> str:
        """String representation of the account."""
        return f"<Account(id={self.id}, provider_id={self.provider_id}, user_id={self.user_id})>"


class Verification(StringIdModel):
    """Pending verification value (e.g. an emailed sign-in link)."""

    __tablename__ = "verification"

    identifier: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
    )
    value: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
