from __future__ import annotations

import importlib
import logging
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from .attendance.controller import register as register_attendance
from .config import get_settings_module
from .container import build_container
from .database.bootstrap import apply_schema, list_tables
from .database.connection import DBConfig, DatabaseConnection
from .database.document_store import DocumentStore
from .holidays.controller import register as register_holidays

logger = logging.getLogger(__name__)


def create_app(*, store: Optional[DocumentStore] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    logging.basicConfig(
        level=getattr(settings, "LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logger.info(
        "settings=%s db=%s@%s:%s/%s",
        settings_module,
        db_config.get("user"),
        db_config.get("host"),
        db_config.get("port", 3306),
        db_config.get("database"),
    )

    if store is None and bool(getattr(settings, "AUTO_INIT_DB", False)):
        conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))
        apply_schema(conn)
        logger.info("schema ready (tables=%d)", len(list_tables(conn)))

    container = build_container(
        db_config=db_config,
        store=store,
        collections=getattr(settings, "COLLECTIONS", None),
        bulk_mark_workers=int(getattr(settings, "BULK_MARK_WORKERS", 8)),
    )
    app.extensions["campus_attendance"] = container

    register_attendance(app, container)
    register_holidays(app, container)

    return app
