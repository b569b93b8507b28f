"""create venues, reservations and group sessions

Revision ID: 202610190900
Revises:
Create Date: 2026-10-19 09:00:00
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "202610190900"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "venues",
        sa.Column("id", sa.String(length=50), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("features", sa.JSON(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "reservations",
        sa.Column("id", sa.String(length=50), nullable=False),
        sa.Column("venue_id", sa.String(length=50), nullable=False),
        sa.Column("holder_id", sa.String(length=100), nullable=False),
        sa.Column("resource_type", sa.String(length=20), nullable=False),
        sa.Column("start_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("duration_or_party_size", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("source_kind", sa.String(length=20), nullable=False),
        sa.Column("source_system", sa.String(length=50), nullable=False),
        sa.Column("source_external_id", sa.String(length=100), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=False),
        sa.Column("history", sa.JSON(), nullable=False),
        sa.Column("vehicle", sa.JSON(), nullable=True),
        sa.Column("holder_name", sa.String(length=255), nullable=True),
        sa.Column("holder_email", sa.String(length=255), nullable=True),
        sa.Column("holder_phone", sa.String(length=50), nullable=True),
        sa.Column("version", sa.Integer(), server_default="1", nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["venue_id"], ["venues.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "venue_id",
            "source_system",
            "source_external_id",
            name="uq_reservations_venue_source_external_id",
        ),
    )
    op.create_index(
        "ix_reservations_venue_start_at",
        "reservations",
        ["venue_id", "start_at"],
        unique=False,
    )
    op.create_index(
        "ix_reservations_venue_holder",
        "reservations",
        ["venue_id", "holder_id"],
        unique=False,
    )

    op.create_table(
        "group_sessions",
        sa.Column("id", sa.String(length=50), nullable=False),
        sa.Column("venue_id", sa.String(length=50), nullable=False),
        sa.Column("parent_user_id", sa.String(length=100), nullable=False),
        sa.Column("parent_name", sa.String(length=255), nullable=False),
        sa.Column("members", sa.JSON(), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("time_limit_minutes", sa.Integer(), nullable=False),
        sa.Column("extended_until", sa.DateTime(timezone=True), nullable=True),
        sa.Column("extension_requested_minutes", sa.Integer(), nullable=True),
        sa.Column("extension_requested_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("warning_15_sent", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("warning_5_sent", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("card_on_file", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("card_last4", sa.String(length=4), nullable=True),
        sa.Column("notes", sa.String(length=1000), nullable=True),
        sa.Column("ended_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), server_default="1", nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["venue_id"], ["venues.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_group_sessions_venue_parent",
        "group_sessions",
        ["venue_id", "parent_user_id"],
        unique=False,
    )
    op.create_index("ix_group_sessions_status", "group_sessions", ["status"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_group_sessions_status", table_name="group_sessions")
    op.drop_index("ix_group_sessions_venue_parent", table_name="group_sessions")
    op.drop_table("group_sessions")
    op.drop_index("ix_reservations_venue_holder", table_name="reservations")
    op.drop_index("ix_reservations_venue_start_at", table_name="reservations")
    op.drop_table("reservations")
    op.drop_table("venues")
