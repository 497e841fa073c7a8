from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .core.constants import DEFAULT_IDENTITY_ASSERTION_MAX_AGE_SECONDS
from .core.logging import configure_logging
from .database.bootstrap import apply_schema, list_tables

from .container import Container, build_container
from .attendance.controller import register as register_attendance
from .auth.controller import register as register_auth
from .sync.controller import register as register_sync
from .tracking.controller import register as register_tracking
from .zones.controller import register as register_zones

logger = logging.getLogger(__name__)


def create_app(container: Optional[Container] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    app.config["IDENTITY_ASSERTION_MAX_AGE_SECONDS"] = float(
        getattr(settings, "IDENTITY_ASSERTION_MAX_AGE_SECONDS", DEFAULT_IDENTITY_ASSERTION_MAX_AGE_SECONDS)
    )
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    if container is None:
        db_config = getattr(settings, "DB_CONFIG")
        logger.info(
            "settings=%s db=%s@%s:%s/%s",
            settings_module,
            db_config.get("user"),
            db_config.get("host"),
            db_config.get("port", 3306),
            db_config.get("database"),
        )
        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            schema_path = Path(__file__).resolve().parents[3] / "database" / "schema.sql"
            apply_schema(db_config, schema_path=schema_path)
            logger.info("Schema ready (tables=%d)", len(list_tables(db_config)))
        container = build_container(settings=settings)
        container.sync_scheduler.start()

    app.extensions["geo_attendance"] = container

    register_auth(app, container)
    register_zones(app, container)
    register_tracking(app, container)
    register_attendance(app, container)
    register_sync(app, container)

    return app
