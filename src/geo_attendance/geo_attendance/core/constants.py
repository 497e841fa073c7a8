"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

EARTH_RADIUS_METERS = 6_371_000.0

DEFAULT_LOITERING_DELAY_SECONDS = 30
DEFAULT_DWELL_THRESHOLD_SECONDS = 15 * 60
DEFAULT_ACCURACY_CEILING_METERS = 100.0

DEFAULT_SAMPLE_INTERVAL_SECONDS = 30
MIN_SAMPLE_INTERVAL_SECONDS = 15

DEFAULT_SYNC_INTERVAL_SECONDS = 15 * 60
DEFAULT_MAX_RETRIES = 3
DEFAULT_BACKOFF_BASE_SECONDS = 2.0

DEFAULT_HISTORY_LIMIT = 30
DEFAULT_ATTENDANCE_SNAPSHOT_SIZE = 512
DEFAULT_SUBSCRIBE_POLL_SECONDS = 5.0
DEFAULT_IDENTITY_ASSERTION_MAX_AGE_SECONDS = 5 * 60

ATTENDANCE_COLLECTION = "attendance"
GEOFENCE_COLLECTION = "geofences"
LOCATION_COLLECTION = "locations"
