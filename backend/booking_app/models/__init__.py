from booking_app.models.availability_policy import AvailabilityPolicyRow
from booking_app.models.booking import BookingRow

__all__ = [
    "AvailabilityPolicyRow",
    "BookingRow",
]
