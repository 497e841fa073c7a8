import os


def _env_float(name: str, default: float) -> float:
    return float(os.environ.get(name, default))


class Config:
    """Settings shared by every environment; env modules override as needed."""

    SECRET_KEY = os.environ.get("SECRET_KEY") or "geo-attendance-dev-secret"

    DB_USER = os.environ.get("DB_USER", "root")
    DB_PASSWORD = os.environ.get("DB_PASSWORD", "")
    DB_HOST = os.environ.get("DB_HOST", "localhost")
    DB_PORT = int(os.environ.get("DB_PORT", "3306"))
    DB_NAME = os.environ.get("DB_NAME", "geo_attendance")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    QR_TOKEN = os.environ.get("QR_TOKEN", "OFFICE_CHECKIN_SYSTEM")
    IDENTITY_ASSERTION_MAX_AGE_SECONDS = _env_float("IDENTITY_ASSERTION_MAX_AGE_SECONDS", 5 * 60)

    # Geofence evaluation
    LOITERING_DELAY_SECONDS = _env_float("LOITERING_DELAY_SECONDS", 30)
    DWELL_THRESHOLD_SECONDS = _env_float("DWELL_THRESHOLD_SECONDS", 15 * 60)
    ACCURACY_CEILING_METERS = _env_float("ACCURACY_CEILING_METERS", 100)
    SAMPLE_INTERVAL_SECONDS = _env_float("SAMPLE_INTERVAL_SECONDS", 30)

    # Offline write queue
    SYNC_INTERVAL_SECONDS = _env_float("SYNC_INTERVAL_SECONDS", 15 * 60)
    SYNC_MAX_RETRIES = int(os.environ.get("SYNC_MAX_RETRIES", "3"))
    SYNC_BACKOFF_BASE_SECONDS = _env_float("SYNC_BACKOFF_BASE_SECONDS", 2)

    AUTO_INIT_DB = bool(int(os.environ.get("AUTO_INIT_DB", "0")))


def db_config() -> dict:
    return {
        "host": Config.DB_HOST,
        "port": Config.DB_PORT,
        "user": Config.DB_USER,
        "password": Config.DB_PASSWORD,
        "database": Config.DB_NAME,
    }
