"""
Centralized constants for slot generation, booking actions and pagination.

Change window sizes or limits here instead of scattering literals across services and routes.
Env-driven overrides live in app settings (booking_app.config).
"""

# Slot generation window, counted from "now" in the organizer's timezone
SLOT_WINDOW_DAYS = 14

# Slots are rendered in UTC unless the caller asks for another zone
DEFAULT_DISPLAY_TIMEZONE = "UTC"

# Booking status (terminal once cancelled)
STATUS_CONFIRMED = "confirmed"
STATUS_CANCELLED = "cancelled"
BOOKING_STATUSES = (STATUS_CONFIRMED, STATUS_CANCELLED)

# Organizer actions on an existing booking
ACTION_RESCHEDULE = "reschedule"
ACTION_CANCEL = "cancel"
BOOKING_ACTIONS = (ACTION_RESCHEDULE, ACTION_CANCEL)

# Settings form bounds
MIN_MEETING_DURATION_MINUTES = 15
MAX_MEETING_DURATION_MINUTES = 240
MAX_BUFFER_MINUTES = 1440  # one day on either side of a meeting
MAX_MINIMUM_NOTICE_HOURS = 8760  # one year
WEEKDAYS = range(1, 8)  # ISO weekdays, Monday=1

# Listing: page clamped to 1..MAX_PAGE, limit clamped to 1..MAX_PAGE_SIZE
DEFAULT_PAGE = 1
MAX_PAGE = 1_000_000
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

# Storage constraint names (must match models and migrations 001-002)
CONFIRMED_START_UNIQUE_INDEX = "uq_bookings_confirmed_organizer_start"
CONFIRMED_OVERLAP_EXCLUSION = "bookings_confirmed_no_overlap"
