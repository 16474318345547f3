from __future__ import annotations

import importlib
import logging
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, jsonify

from .attendance.controller import register as register_attendance
from .config import get_settings_module
from .container import Container, build_container
from .database.bootstrap import apply_schema, apply_seed_sql, list_tables
from .fees.controller import register as register_fees
from .tutes.controller import register as register_tutes

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str) -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    logging.getLogger("eduflex").setLevel(level.upper())


def create_app(settings_module: Optional[str] = None, *, container: Optional[Container] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = settings_module or get_settings_module()
    settings = importlib.import_module(settings_module)
    configure_logging(str(getattr(settings, "LOG_LEVEL", "INFO")))

    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG")
    backend = str(getattr(settings, "STORE_BACKEND", "mysql"))
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    app.config["REQUEST_TIMEOUT_SECONDS"] = float(getattr(settings, "REQUEST_TIMEOUT_SECONDS", 15))
    app.config["STORE_BACKEND"] = backend

    logger.info("settings=%s backend=%s", settings_module, backend)

    if container is None and backend == "mysql":
        if getattr(settings, "AUTO_INIT_DB", False):
            apply_schema(db_config)
            logger.info("schema ready (tables=%d)", len(list_tables(db_config)))
        if getattr(settings, "AUTO_SEED_DB", False):
            apply_seed_sql(db_config)
            logger.info("demo seed ready")

    container = container or build_container(db_config=db_config, backend=backend)
    app.extensions["eduflex"] = container
    if container.conn is not None:
        logger.info("mysql store at %s", container.conn.description)

    @app.route("/api/health", methods=["GET"], endpoint="health")
    def health():
        return jsonify({"status": "ok", "backend": backend})

    register_attendance(app, container)
    register_fees(app, container)
    register_tutes(app, container)

    return app
