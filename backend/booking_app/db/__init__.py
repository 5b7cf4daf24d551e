from booking_app.db.base import Base
from booking_app.db.session import get_db, engine, SessionLocal
from booking_app.db.tables import ALL_TABLE_NAMES

__all__ = ["get_db", "engine", "SessionLocal", "Base", "ALL_TABLE_NAMES"]
