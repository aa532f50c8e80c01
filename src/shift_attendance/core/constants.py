"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_TIMEZONE = "Australia/Brisbane"
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
WEEK_LENGTH_DAYS = 7
DEFAULT_LOCK_TIMEOUT_SECONDS = 10
DEFAULT_SHIFT_LIST_LIMIT = 1000
