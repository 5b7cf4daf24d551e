"""
Shared route dependencies: repository per request, injectable clock, organizer identity.

Identity is owned by an upstream gateway; it authenticates the organizer and forwards
the id in X-Organizer-Id. Routes receive it as a plain argument.
"""
from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from booking_app.core.clock import Clock, utc_now
from booking_app.db.session import get_db
from booking_app.repository.sql import SqlBookingRepository


def get_repository(db: Session = Depends(get_db)) -> SqlBookingRepository:
    return SqlBookingRepository(db)


def get_clock() -> Clock:
    """Override in tests via app.dependency_overrides[get_clock]."""
    return utc_now


def current_organizer_id(x_organizer_id: str | None = Header(None, alias="X-Organizer-Id")) -> str:
    organizer_id = (x_organizer_id or "").strip()
    if not organizer_id:
        raise HTTPException(status_code=401, detail={"error": "unauthenticated", "message": "Missing X-Organizer-Id"})
    return organizer_id
