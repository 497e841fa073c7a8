import os

from .config import Config, db_config

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")
DB_CONFIG = db_config()

DEBUG = False
LOG_LEVEL = Config.LOG_LEVEL
QR_TOKEN = Config.QR_TOKEN
IDENTITY_ASSERTION_MAX_AGE_SECONDS = Config.IDENTITY_ASSERTION_MAX_AGE_SECONDS

LOITERING_DELAY_SECONDS = Config.LOITERING_DELAY_SECONDS
DWELL_THRESHOLD_SECONDS = Config.DWELL_THRESHOLD_SECONDS
ACCURACY_CEILING_METERS = Config.ACCURACY_CEILING_METERS
SAMPLE_INTERVAL_SECONDS = Config.SAMPLE_INTERVAL_SECONDS

SYNC_INTERVAL_SECONDS = Config.SYNC_INTERVAL_SECONDS
SYNC_MAX_RETRIES = Config.SYNC_MAX_RETRIES
SYNC_BACKOFF_BASE_SECONDS = Config.SYNC_BACKOFF_BASE_SECONDS

AUTO_INIT_DB = Config.AUTO_INIT_DB
