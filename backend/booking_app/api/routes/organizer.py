"""
Organizer API: availability settings and booking management.

Caller identity comes from current_organizer_id (X-Organizer-Id set by the gateway).
"""
import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field

from booking_app.api.deps import current_organizer_id, get_clock, get_repository
from booking_app.core.clock import Clock
from booking_app.core.errors import BookingError, booking_error_to_http
from booking_app.repository.base import BookingRepository
from booking_app.services.booking_service import list_bookings, update_booking
from booking_app.services.policy_service import get_policy, update_policy

router = APIRouter()
logger = logging.getLogger(__name__)


class WorkingHoursEntry(BaseModel):
    day: int = Field(..., description="ISO weekday, 1 (Monday) to 7 (Sunday)")
    start: str = Field(..., description="HH:MM, organizer-local")
    end: str = Field(..., description="HH:MM, organizer-local")


class UpdateSettingsRequest(BaseModel):
    """Full policy. Ranges and cross-field rules are checked by the policy service."""

    model_config = ConfigDict(populate_by_name=True)

    timezone: str = Field(..., description="IANA timezone, e.g. America/Bogota")
    working_hours: list[WorkingHoursEntry] = Field(..., alias="workingHours")
    meeting_duration: int = Field(..., alias="meetingDuration", description="Minutes")
    buffer_before: int = Field(0, alias="bufferBefore", description="Minutes")
    buffer_after: int = Field(0, alias="bufferAfter", description="Minutes")
    minimum_notice: int = Field(0, alias="minimumNotice", description="Hours")
    blackout_dates: list[str] = Field(default_factory=list, alias="blackoutDates", description="YYYY-MM-DD")


class UpdateBookingRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    action: str | None = Field(None, description="reschedule | cancel")
    new_start_time: str | None = Field(None, alias="newStartTime")
    version: int | None = Field(None, description="Version the caller last saw (optimistic lock)")


def _reject(exc: BookingError, action: str, organizer_id: str) -> HTTPException:
    logger.info("%s rejected: organizer=%s code=%s", action, organizer_id, exc.code)
    return booking_error_to_http(exc)


# --- Settings ---


@router.get("/settings")
def read_settings(
    organizer_id: str = Depends(current_organizer_id),
    repository: BookingRepository = Depends(get_repository),
) -> dict[str, Any]:
    try:
        return get_policy(repository, organizer_id).to_dict()
    except BookingError as exc:
        raise _reject(exc, "read_settings", organizer_id) from exc


@router.put("/settings")
def replace_settings(
    body: UpdateSettingsRequest,
    organizer_id: str = Depends(current_organizer_id),
    repository: BookingRepository = Depends(get_repository),
) -> dict[str, Any]:
    """Create or replace the whole policy. Does not touch existing bookings."""
    try:
        return update_policy(repository, organizer_id, body.model_dump(by_alias=True)).to_dict()
    except BookingError as exc:
        raise _reject(exc, "replace_settings", organizer_id) from exc


# --- Bookings ---


@router.get("/bookings")
def read_bookings(
    organizer_id: str = Depends(current_organizer_id),
    repository: BookingRepository = Depends(get_repository),
    status: str | None = Query(None, description="confirmed (default) | cancelled"),
    page: str | None = Query(None, description="1-based; invalid values fall back to 1"),
    limit: str | None = Query(None, description="1-100; invalid values fall back to the default"),
) -> dict[str, Any]:
    try:
        return list_bookings(repository, organizer_id, status=status, page=page, limit=limit)
    except BookingError as exc:
        raise _reject(exc, "list_bookings", organizer_id) from exc


@router.patch("/bookings/{booking_id}")
def change_booking(
    booking_id: str,
    body: UpdateBookingRequest,
    organizer_id: str = Depends(current_organizer_id),
    repository: BookingRepository = Depends(get_repository),
    clock: Clock = Depends(get_clock),
) -> dict[str, Any]:
    """Reschedule or cancel. 409 concurrent_modification means the booking changed since you read it."""
    try:
        booking = update_booking(repository, organizer_id, booking_id, body.model_dump(by_alias=True), clock=clock)
    except BookingError as exc:
        raise _reject(exc, "update_booking", organizer_id) from exc
    return booking.to_dict()
