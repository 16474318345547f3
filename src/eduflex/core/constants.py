"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_REQUEST_TIMEOUT_SECONDS = 15
ATTENDANCE_WARNING_RATE = 75
ISO_DATE_FORMAT = "%Y-%m-%d"
MONTH_FORMAT = "%Y-%m"
