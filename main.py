"""WSGI entrypoint for the analytics service during local development."""
from __future__ import annotations

import logging
import os

from incident_analytics import create_app


app = create_app()


def main() -> None:
    logging.basicConfig(level=app.config["LOG_LEVEL"], format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    app.run(port=int(os.getenv("PORT", "5000")), debug=os.getenv("FLASK_DEBUG") == "1")


if __name__ == "__main__":
    main()
