from booking_app.services.booking_service import create_booking, get_available_slots, list_bookings, update_booking
from booking_app.services.policy_service import get_policy, update_policy

__all__ = ["create_booking", "get_available_slots", "list_bookings", "update_booking", "get_policy", "update_policy"]
