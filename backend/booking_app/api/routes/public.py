"""
Public booking API: open slots and invitee booking for one organizer.

No identity here; the organizer comes from the path.
"""
import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field

from booking_app.api.deps import get_clock, get_repository
from booking_app.config import settings
from booking_app.core.clock import Clock
from booking_app.core.errors import BookingError, booking_error_to_http
from booking_app.repository.base import BookingRepository
from booking_app.services.booking_service import create_booking, get_available_slots

router = APIRouter()
logger = logging.getLogger(__name__)


class CreateBookingRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    start_time: str | None = Field(None, alias="startTime", description="ISO-8601; offset-less values use `timezone`")
    invitee_name: str | None = Field(None, alias="inviteeName")
    invitee_email: str | None = Field(None, alias="inviteeEmail")
    timezone: str | None = Field(None, description="Invitee's IANA timezone (record-keeping)")


def _reject(exc: BookingError, action: str, organizer_id: str) -> HTTPException:
    logger.info("%s rejected: organizer=%s code=%s", action, organizer_id, exc.code)
    return booking_error_to_http(exc)


@router.get("/{organizer_id}/slots")
def list_open_slots(
    organizer_id: str,
    timezone: str | None = Query(None, description="Display timezone for slot times (default: DEFAULT_DISPLAY_TIMEZONE setting)"),
    repository: BookingRepository = Depends(get_repository),
    clock: Clock = Depends(get_clock),
) -> dict[str, Any]:
    """Open slots over the next 14 days, each {start, end} with explicit UTC offset."""
    try:
        slots = get_available_slots(repository, organizer_id, timezone, clock=clock)
    except BookingError as exc:
        raise _reject(exc, "list_open_slots", organizer_id) from exc
    return {"organizer_id": organizer_id, "timezone": timezone or settings.default_display_timezone, "slots": slots}


@router.post("/{organizer_id}/bookings", status_code=201)
def book_slot(
    organizer_id: str,
    body: CreateBookingRequest,
    repository: BookingRepository = Depends(get_repository),
    clock: Clock = Depends(get_clock),
) -> dict[str, Any]:
    """Book one slot. 409 slot_already_booked means someone took it first: refresh slots and retry."""
    try:
        booking = create_booking(repository, organizer_id, body.model_dump(by_alias=True), clock=clock)
    except BookingError as exc:
        raise _reject(exc, "create_booking", organizer_id) from exc
    return booking.to_dict()
