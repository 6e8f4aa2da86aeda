from __future__ import annotations

import atexit
import os
from collections.abc import Mapping
from typing import Any

from flask import Flask
from flask_cors import CORS

from .api import register_blueprints
from .config import get_config
from .db import init_db
from .observability import init_observability
from .services.paste_service import PasteService
from .worker import start_expiry_worker


def create_app(
    env_name: str | None = None,
    config_overrides: Mapping[str, Any] | None = None,
) -> Flask:
    """
    Application factory for the paste service.

    The configuration is selected based on the provided ``env_name`` or,
    if not given, the ``APP_ENV`` environment variable (falling back to
    ``development``). ``config_overrides`` is applied last.
    """
    if env_name is None:
        env_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__)
    app.config.from_object(get_config(env_name))
    if config_overrides:
        app.config.update(config_overrides)

    # Answer every origin with a literal "*".
    CORS(app, send_wildcard=True)

    # Initialize infrastructure layers
    database = init_db(app)
    atexit.register(database.dispose)
    init_observability(app)

    app.extensions["pasteshare.paste_service"] = PasteService(
        session_factory=database.session_factory,
        base_url=app.config["BASE_URL"],
        max_content_bytes=app.config["MAX_CONTENT_BYTES"],
    )

    register_blueprints(app)

    # Start background expiry sweeper (disabled in testing)
    if app.config.get("EXPIRY_SWEEP_ENABLED") and not app.config.get("TESTING", False):
        start_expiry_worker(app)

    return app
