"""
Application configuration module.

This module defines configuration classes for different environments
(development, testing, production). Configuration values are loaded
from environment variables with sensible defaults.
"""

import os
from pathlib import Path

# Base directory of the project
BASE_DIR = Path(__file__).resolve().parent


class Config:
    """Base configuration with default settings."""

    SECRET_KEY: str = os.environ.get("SECRET_KEY", "dev-secret-key-change-in-production")
    SQLALCHEMY_TRACK_MODIFICATIONS: bool = False

    # Default database location
    SQLALCHEMY_DATABASE_URI: str = os.environ.get(
        "DATABASE_URL",
        f"sqlite:///{BASE_DIR / 'instance' / 'monitor.db'}"
    )

    # PageSpeed Insights measurement API
    PAGESPEED_API_URL: str = os.environ.get(
        "PAGESPEED_API_URL",
        "https://www.googleapis.com/pagespeedonline/v5/runPagespeed"
    )
    PAGESPEED_API_KEY: str = os.environ.get("PAGESPEED_API_KEY", "")
    # Lighthouse runs routinely take 10-30s per strategy
    PAGESPEED_TIMEOUT: int = int(os.environ.get("PAGESPEED_TIMEOUT", "60"))

    # Pause between consecutive site checks to respect the API rate limit
    SWEEP_DELAY_SECONDS: float = float(os.environ.get("SWEEP_DELAY_SECONDS", "2.0"))

    RECENT_METRICS_LIMIT: int = int(os.environ.get("RECENT_METRICS_LIMIT", "100"))


class DevelopmentConfig(Config):
    """Development environment configuration."""

    DEBUG: bool = True
    TESTING: bool = False


class TestingConfig(Config):
    """Testing environment configuration."""

    DEBUG: bool = True
    TESTING: bool = True

    # Use separate test database with check_same_thread=False for multi-threaded access
    SQLALCHEMY_DATABASE_URI: str = os.environ.get(
        "TEST_DATABASE_URL",
        f"sqlite:///{BASE_DIR / 'instance' / 'test_monitor.db'}?check_same_thread=False"
    )

    # SQLAlchemy engine options for thread safety
    SQLALCHEMY_ENGINE_OPTIONS: dict = {
        "pool_pre_ping": True,
    }

    # Tests must never reach the real API
    PAGESPEED_API_URL: str = "http://pagespeed.invalid/runPagespeed"
    PAGESPEED_API_KEY: str = "test-api-key"
    PAGESPEED_TIMEOUT: int = 1
    SWEEP_DELAY_SECONDS: float = 0.0


class ProductionConfig(Config):
    """Production environment configuration."""

    DEBUG: bool = False
    TESTING: bool = False


# Configuration mapping for easy access
config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}


def get_config(env: str | None = None) -> type[Config]:
    """
    Get the configuration class for the specified environment.

    Args:
        env: Environment name (development, testing, production).
             If None, uses FLASK_ENV environment variable.

    Returns:
        Configuration class for the specified environment.
    """
    if env is None:
        env = os.environ.get("FLASK_ENV", "development")
    return config.get(env, config["default"])
