"""WSGI entry point for the Site Monitor."""

import os

from monitor_app import create_app

app = create_app(os.getenv("FLASK_ENV", "production"))
