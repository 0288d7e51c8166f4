"""Base model with common fields for all models."""

import uuid
from datetime import UTC, datetime

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class TimestampMixin:
    """Mixin for adding timestamp fields to models."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )


class BaseModel(Base, TimestampMixin):
    """Base model with an auto-incrementing integer primary key and timestamps.

    Used by the commute tables (routes, groups, trips), whose ids travel
    through form fields as plain integers.
    """

    __abstract__ = True

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    def __repr__(self) -> str:
        """String representation of the model."""
        return f"<{self.__class__.__name__}(id={self.id})>"


def generate_string_id() -> str:
    """Generate an opaque string primary key for auth-owned tables."""
    return uuid.uuid4().hex


class StringIdModel(Base, TimestampMixin):
    """Base model with an opaque string primary key and timestamps.

    Used by the identity tables, whose ids come from (or mirror) the external
    identity provider.
    """

    __abstract__ = True

    id: Mapped[str] = mapped_column(
        String(255),
        primary_key=True,
        default=generate_string_id,
    )

    def __repr__(self) -> str:
        """String representation of the model."""
        return f"<{self.__class__.__name__}(id={self.id})>"
