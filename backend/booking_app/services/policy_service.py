"""
Organizer availability settings. One policy per organizer, created on first save
and replaced wholesale afterwards. Existing bookings are never re-validated.
"""
import logging
from typing import Any

from booking_app.core.errors import OrganizerNotFound
from booking_app.repository.base import BookingRepository
from booking_app.scheduling.types import AvailabilityPolicy
from booking_app.services.validation import policy_from_payload

logger = logging.getLogger(__name__)


def get_policy(repository: BookingRepository, organizer_id: str) -> AvailabilityPolicy:
    policy = repository.get_policy(organizer_id)
    if policy is None:
        raise OrganizerNotFound()
    return policy


def update_policy(repository: BookingRepository, organizer_id: str, payload: dict[str, Any]) -> AvailabilityPolicy:
    """Validate and store the full settings payload. Raises InvalidRequest listing every bad field."""
    policy = policy_from_payload(organizer_id, payload)
    created = repository.get_policy(organizer_id) is None
    saved = repository.save_policy(policy)
    logger.info(
        "update_policy: organizer=%s %s tz=%s duration=%s days=%s",
        organizer_id, "created" if created else "replaced", saved.timezone, saved.meeting_duration,
        len(saved.working_hours),
    )
    return saved
