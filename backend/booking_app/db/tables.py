"""
Single source of truth for database tables that exist after migrations (001-002).

Use these names when writing raw SQL. alembic/env.py asserts the registered models match.
"""
ALL_TABLE_NAMES = (
    "availability_policies",
    "bookings",
)
