from .config import db_config

SECRET_KEY = "test-secret"
DB_CONFIG = db_config()

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"
QR_TOKEN = "TEST_QR_TOKEN"
IDENTITY_ASSERTION_MAX_AGE_SECONDS = 5 * 60

LOITERING_DELAY_SECONDS = 30
DWELL_THRESHOLD_SECONDS = 15 * 60
ACCURACY_CEILING_METERS = 100
SAMPLE_INTERVAL_SECONDS = 30

SYNC_INTERVAL_SECONDS = 15 * 60
SYNC_MAX_RETRIES = 3
SYNC_BACKOFF_BASE_SECONDS = 0

AUTO_INIT_DB = False
