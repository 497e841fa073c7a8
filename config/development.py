import os

from .config import Config, db_config

SECRET_KEY = Config.SECRET_KEY
DB_CONFIG = db_config()

DEBUG = True
LOG_LEVEL = "DEBUG"
QR_TOKEN = Config.QR_TOKEN
IDENTITY_ASSERTION_MAX_AGE_SECONDS = Config.IDENTITY_ASSERTION_MAX_AGE_SECONDS

LOITERING_DELAY_SECONDS = Config.LOITERING_DELAY_SECONDS
DWELL_THRESHOLD_SECONDS = Config.DWELL_THRESHOLD_SECONDS
ACCURACY_CEILING_METERS = Config.ACCURACY_CEILING_METERS
SAMPLE_INTERVAL_SECONDS = Config.SAMPLE_INTERVAL_SECONDS

SYNC_INTERVAL_SECONDS = Config.SYNC_INTERVAL_SECONDS
SYNC_MAX_RETRIES = Config.SYNC_MAX_RETRIES
SYNC_BACKOFF_BASE_SECONDS = Config.SYNC_BACKOFF_BASE_SECONDS

# If enabled, the app applies database/schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
