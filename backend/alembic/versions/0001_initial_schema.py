"""initial_schema

Creates the identity tables (user, session, account, verification) and the
commute tables (route_group, route, trip).

Revision ID: 0001
Revises:
Create Date: 2026-10-19 09:12:44.318204

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "user",
        sa.Column("id", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("email_verified", sa.Boolean(), nullable=False),
        sa.Column("image", sa.Text(), nullable=True),
        sa.Column("auth_provider", sa.String(length=50), server_default="oauth", nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )

    op.create_table(
        "session",
        sa.Column("id", sa.String(length=255), nullable=False),
        sa.Column(
            "token",
            sa.String(length=255),
            nullable=False,
            comment="Token identifier (jti) of the session token, never the token itself",
        ),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["user.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("token"),
    )
    op.create_index(op.f("ix_session_user_id"), "session", ["user_id"], unique=False)

    op.create_table(
        "account",
        sa.Column("id", sa.String(length=255), nullable=False),
        sa.Column(
            "account_id",
            sa.String(length=255),
            nullable=False,
            comment="Account identifier on the provider side",
        ),
        sa.Column("provider_id", sa.String(length=50), nullable=False),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["user.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("provider_id", "account_id", name="uq_account_provider_account"),
    )
    op.create_index(op.f("ix_account_user_id"), "account", ["user_id"], unique=False)

    op.create_table(
        "verification",
        sa.Column("id", sa.String(length=255), nullable=False),
        sa.Column("identifier", sa.String(length=255), nullable=False),
        sa.Column("value", sa.Text(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_verification_identifier"), "verification", ["identifier"], unique=False)

    op.create_table(
        "route_group",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["user.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_route_group_user_id"), "route_group", ["user_id"], unique=False)

    op.create_table(
        "route",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        sa.Column("route_group_id", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["route_group_id"], ["route_group.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["user_id"], ["user.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_route_user_id"), "route", ["user_id"], unique=False)
    op.create_index(op.f("ix_route_route_group_id"), "route", ["route_group_id"], unique=False)
    op.create_index("ix_route_user_id_route_group_id", "route", ["user_id", "route_group_id"], unique=False)

    op.create_table(
        "trip",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("start_location", sa.JSON(), server_default=sa.text("'{}'"), nullable=False),
        sa.Column("end_location", sa.JSON(), server_default=sa.text("'{}'"), nullable=False),
        sa.Column("path", sa.JSON(), server_default=sa.text("'{}'"), nullable=False),
        sa.Column("route_id", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["route_id"], ["route.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_trip_route_id"), "trip", ["route_id"], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index(op.f("ix_trip_route_id"), table_name="trip")
    op.drop_table("trip")
    op.drop_index("ix_route_user_id_route_group_id", table_name="route")
    op.drop_index(op.f("ix_route_route_group_id"), table_name="route")
    op.drop_index(op.f("ix_route_user_id"), table_name="route")
    op.drop_table("route")
    op.drop_index(op.f("ix_route_group_user_id"), table_name="route_group")
    op.drop_table("route_group")
    op.drop_index(op.f("ix_verification_identifier"), table_name="verification")
    op.drop_table("verification")
    op.drop_index(op.f("ix_account_user_id"), table_name="account")
    op.drop_table("account")
    op.drop_index(op.f("ix_session_user_id"), table_name="session")
    op.drop_table("session")
    op.drop_table("user")
