# backend/uidops/__init__.py
from __future__ import annotations

import logging
from typing import Any, Mapping

from flask import Flask, request

from .config import Config
from .extensions import db, migrate
from .services.event_bus import CompletionEventBus
from .time_utils import BusinessClock


def _origin_allowed(origin: str | None, allowed: str) -> bool:
    if not origin or allowed == "*" or origin == allowed:
        return True
    # "https://*.netlify.app" style settings admit preview subdomains
    return allowed.endswith(".netlify.app") and origin.endswith(".netlify.app")


def create_app(overrides: Mapping[str, Any] | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    app.logger.setLevel(getattr(logging, str(app.config["LOG_LEVEL"]).upper(), logging.INFO))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Clock and bus are injected per app so tests can pin time and listen in
    clock = app.config.get("BUSINESS_CLOCK")
    bus = app.config.get("COMPLETION_BUS")
    app.extensions["business_clock"] = clock if clock is not None else BusinessClock(app.config["BUSINESS_TZ"])
    app.extensions["completion_bus"] = bus if bus is not None else CompletionEventBus()

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.records import records_bp
    from .routes.plans import plans_bp
    from .routes.analytics import analytics_bp
    from .routes.export import export_bp
    from .routes.events import events_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(records_bp)
    app.register_blueprint(plans_bp)
    app.register_blueprint(analytics_bp)
    app.register_blueprint(export_bp)
    app.register_blueprint(events_bp)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allowed = app.config["ALLOWED_ORIGIN"]
        if origin and _origin_allowed(origin, allowed):
            response.headers["Access-Control-Allow-Origin"] = "*" if allowed == "*" else origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    app.logger.info("UID ops app ready (business tz %s)", app.extensions["business_clock"].tz_name)
    return app
