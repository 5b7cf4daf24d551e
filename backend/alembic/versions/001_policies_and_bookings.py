"""availability_policies (one per organizer) + bookings with partial unique index on confirmed (organizer_id, start_time).

Revision ID: 001
Revises:
Create Date: (run alembic upgrade head)

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "availability_policies",
        sa.Column("organizer_id", sa.String(64), nullable=False),
        sa.Column("timezone", sa.String(100), nullable=False),
        sa.Column("working_hours", sa.JSON(), nullable=False),
        sa.Column("meeting_duration", sa.Integer(), nullable=False),
        sa.Column("buffer_before", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("buffer_after", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("minimum_notice", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("blackout_dates", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("organizer_id"),
    )

    op.create_table(
        "bookings",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("organizer_id", sa.String(64), nullable=False),
        sa.Column("invitee_name", sa.String(255), nullable=False),
        sa.Column("invitee_email", sa.String(255), nullable=False),
        sa.Column("invitee_timezone", sa.String(100), nullable=True),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="confirmed"),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_bookings_organizer_id", "bookings", ["organizer_id"])
    # Final arbiter for same-start races: at most one confirmed booking per (organizer, start).
    op.create_index(
        "uq_bookings_confirmed_organizer_start",
        "bookings",
        ["organizer_id", "start_time"],
        unique=True,
        postgresql_where=sa.text("status = 'confirmed'"),
        sqlite_where=sa.text("status = 'confirmed'"),
    )


def downgrade() -> None:
    op.drop_index("uq_bookings_confirmed_organizer_start", table_name="bookings")
    op.drop_index("ix_bookings_organizer_id", table_name="bookings")
    op.drop_table("bookings")
    op.drop_table("availability_policies")
