"""Application factory for the campus incident analytics service."""
from __future__ import annotations

import os
from flask import Flask

from .routes import register_routes


def create_app(config: dict | None = None) -> Flask:
    """Application factory used by the WSGI entrypoint."""
    store_url = os.getenv("INCIDENT_STORE_URL")
    if store_url:
        store_url = store_url.strip()

    app = Flask(__name__)
    app.config.update(
        INCIDENT_STORE_URL=store_url or None,
        INCIDENT_STORE_TIMEOUT=float(os.getenv("INCIDENT_STORE_TIMEOUT", "10")),
        ANALYTICS_TIMEZONE=os.getenv("ANALYTICS_TIMEZONE", "UTC").strip(),
        ROLLING_WINDOW=int(os.getenv("ANALYTICS_ROLLING_WINDOW", "7")),
        FORECAST_WINDOW=int(os.getenv("ANALYTICS_FORECAST_WINDOW", "4")),
        HEAT_POINT_WEIGHT=0.5,
        DEFAULT_GRANULARITY="week",
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
    if config:
        app.config.update(config)

    app.logger.setLevel(app.config["LOG_LEVEL"])
    register_routes(app)
    return app


__all__ = ["create_app"]
