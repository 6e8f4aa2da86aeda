from __future__ import annotations

from flask import Flask

from .pastes import api_bp
from .views import html_bp


def register_blueprints(app: Flask) -> None:
    app.register_blueprint(api_bp)
    app.register_blueprint(html_bp)
