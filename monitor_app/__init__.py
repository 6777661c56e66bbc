"""
Flask application factory module.

This module creates and configures the Site Monitor application using
the factory pattern, allowing for different configurations
(development, testing, production).
"""

import logging
import os

import click
from flask import Flask, current_app
from flask.cli import with_appcontext
from flask_sqlalchemy import SQLAlchemy

from config import get_config

# Initialize SQLAlchemy without binding to app
db = SQLAlchemy()

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

SWEEP_EXTENSION = "sweep_controller"


def build_sweep_controller(app: Flask):
    """
    Create the sweep controller wired to the PageSpeed client and database.

    Args:
        app: Application whose configuration provides the API settings.

    Returns:
        A ``SweepController`` instance.
    """
    from monitor_app.pagespeed import PageSpeedClient
    from monitor_app.repository import latest_metrics, record_metric
    from monitor_app.sweep import SweepController

    client = PageSpeedClient(
        api_url=app.config["PAGESPEED_API_URL"],
        api_key=app.config["PAGESPEED_API_KEY"],
        timeout=app.config["PAGESPEED_TIMEOUT"],
    )
    return SweepController(
        measure=client.check,
        persist=record_metric,
        delay_seconds=app.config["SWEEP_DELAY_SECONDS"],
        load_index=latest_metrics,
    )


def get_sweep_controller():
    """Return the sweep controller of the current application."""
    return current_app.extensions[SWEEP_EXTENSION]


@click.command("check-websites")
@with_appcontext
def check_websites_command() -> None:
    """Run one performance sweep over every website."""
    from monitor_app.errors import ConcurrentSweepRejected, PersistenceFailure
    from monitor_app.repository import list_websites

    try:
        report = get_sweep_controller().run(list_websites())
    except (ConcurrentSweepRejected, PersistenceFailure) as exc:
        raise click.ClickException(str(exc)) from exc

    for outcome in report.outcomes:
        state = "ok" if outcome.ok else f"failed ({outcome.reason})"
        click.echo(f"{outcome.website_name}: {state}")
    click.echo(f"{len(report.succeeded)} succeeded, {len(report.failed)} failed")


def create_app(config_name: str | None = None) -> Flask:
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     If None, uses FLASK_ENV environment variable.

    Returns:
        Configured Flask application instance.
    """
    app = Flask(__name__, instance_relative_config=True)

    # Load configuration
    config_class = get_config(config_name)
    app.config.from_object(config_class)

    logger.info(f"Creating app with config: {config_class.__name__}")

    # Ensure instance folder exists
    try:
        os.makedirs(app.instance_path, exist_ok=True)
    except OSError:
        pass

    # Initialize extensions
    db.init_app(app)
    app.extensions[SWEEP_EXTENSION] = build_sweep_controller(app)

    # Register blueprints
    from monitor_app.routes.api import api_bp
    from monitor_app.routes.views import views_bp

    app.register_blueprint(api_bp, url_prefix="/api")
    app.register_blueprint(views_bp)
    app.cli.add_command(check_websites_command)

    # Create database tables
    with app.app_context():
        db.create_all()
        logger.info("Database tables created")

    return app
