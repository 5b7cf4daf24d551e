"""
Booking storage: one protocol, two implementations.
In-memory for tests and single-process use; SQLAlchemy for the service.
"""
from booking_app.repository.base import BookingRepository
from booking_app.repository.memory import InMemoryBookingRepository
from booking_app.repository.sql import SqlBookingRepository

__all__ = [
    "BookingRepository",
    "InMemoryBookingRepository",
    "SqlBookingRepository",
]
