"""bookings: PostgreSQL exclusion constraint so confirmed bookings of one organizer never overlap.

The partial unique index (001) only catches identical start times; this also rejects
overlapping ranges with different starts. PostgreSQL only; other dialects skip it.

Revision ID: 002
Revises: 001
Create Date: (run alembic upgrade head)

"""
from typing import Sequence, Union

from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

EXCLUSION_CONSTRAINT_NAME = "bookings_confirmed_no_overlap"


def upgrade() -> None:
    if op.get_bind().dialect.name != "postgresql":
        return
    op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")
    op.execute(
        f"""
        ALTER TABLE bookings
        ADD CONSTRAINT {EXCLUSION_CONSTRAINT_NAME}
        EXCLUDE USING gist (
            organizer_id WITH =,
            tstzrange(start_time, end_time, '[)') WITH &&
        )
        WHERE (status = 'confirmed')
        """
    )


def downgrade() -> None:
    if op.get_bind().dialect.name != "postgresql":
        return
    op.execute(f"ALTER TABLE bookings DROP CONSTRAINT IF EXISTS {EXCLUSION_CONSTRAINT_NAME}")
