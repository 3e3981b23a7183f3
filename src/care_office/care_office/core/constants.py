"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

TEMP_ID_PREFIX = "temp-"
TEMP_ID_RANDOM_LENGTH = 7

DEFAULT_ACTIVITY_LIMIT = 20
DESCRIPTION_VALUE_MAX = 50

UNASSIGNED_LABEL = "Unassigned"
ACTIVITY_LOG_SECTION = "activity_log"

# Page sessions untouched for this many seconds are dropped with their unsaved buffer.
PAGE_IDLE_TTL_SECONDS = 2 * 60 * 60

# Columns never reported as user-visible changes.
SYSTEM_FIELDS = frozenset({"id", "created_at", "updated_at", "photo_file"})

STAFF_BUCKET = "staff-documents"
PARTICIPANT_BUCKET = "participants"
HOUSE_BUCKET = "houses"
