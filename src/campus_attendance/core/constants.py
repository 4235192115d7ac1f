"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

EARTH_RADIUS_M = 6_371_000

# Marking window used when a batch has no attendanceTime configured.
DEFAULT_ATTENDANCE_START = "09:00"
DEFAULT_ATTENDANCE_END = "17:00"

# Times filled in for Present entries marked in bulk without explicit times.
DEFAULT_IN_TIME = "09:30"
DEFAULT_OUT_TIME = "17:00"

DOCUMENT_PAGE_LIMIT = 100
DEFAULT_BULK_MARK_WORKERS = 8

AUTO_ABSENT_REASON = "Auto-marked absent"
