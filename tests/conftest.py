"""
Shared pytest fixtures for the Site Monitor test suite.

This module contains fixtures that are shared across all test modules.
Fixtures follow the Arrange-Act-Assert (AAA) pattern and ensure
test isolation by providing fresh data for each test.

Key Concepts Demonstrated:
- Fixture scopes (function, session)
- Test data factories backed by Faker
- Database setup/teardown
- A scripted stand-in for the PageSpeed Insights API
"""

import os
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
from faker import Faker

# Set testing environment before importing app
os.environ["FLASK_ENV"] = "testing"

from monitor_app import SWEEP_EXTENSION, create_app, db
from monitor_app.models import Customer, MetricOutcome, PerformanceMetric, Website
from monitor_app.pagespeed import PageSpeedResult
from monitor_app.repository import latest_metrics, record_metric
from monitor_app.sweep import SweepController


# Initialize Faker for generating test data
fake = Faker()


def make_result(mobile_score: float = 92, desktop_score: float = 97, **overrides: Any) -> PageSpeedResult:
    """Build a successful ``PageSpeedResult`` with realistic defaults."""
    values = {
        "status": MetricOutcome.SUCCESS.value,
        "mobile_score": mobile_score,
        "desktop_score": desktop_score,
        "mobile_fcp": 1500.0,
        "mobile_lcp": 2300.0,
        "mobile_cls": 0.05,
        "mobile_fid": 80.0,
        "mobile_inp": 90.0,
        "mobile_worst_cluster": 0,
        "desktop_fcp": 600.0,
        "desktop_lcp": 900.0,
        "desktop_cls": 0.01,
        "desktop_fid": 20.0,
        "desktop_inp": 40.0,
        "desktop_worst_cluster": 0,
    }
    values.update(overrides)
    return PageSpeedResult(**values)


class FakeMeasurement:
    """
    Scripted replacement for ``PageSpeedClient.check``.

    Responses are looked up by URL. A response may be a
    ``PageSpeedResult`` or an exception instance to raise. URLs without a
    scripted response get a default successful result.
    """

    def __init__(self):
        self.responses: dict[str, Any] = {}
        self.calls: list[str] = []

    def __call__(self, url: str) -> PageSpeedResult:
        self.calls.append(url)
        response = self.responses.get(url, make_result())
        if isinstance(response, Exception):
            raise response
        return response


# -----------------------------------------------------------------------------
# Application Fixtures
# -----------------------------------------------------------------------------

@pytest.fixture(scope="session")
def app():
    """
    Create application instance for the test session.

    The 'session' scope means the same app instance is reused
    for all tests, improving performance.

    Yields:
        Flask application instance configured for testing.
    """
    application = create_app("testing")
    yield application


@pytest.fixture(scope="function")
def client(app):
    """
    Create a test client for making HTTP requests.

    Yields:
        Flask test client for making HTTP requests.
    """
    with app.test_client() as test_client:
        yield test_client


@pytest.fixture(scope="function")
def db_session(app):
    """
    Create a fresh database session for each test.

    This fixture ensures test isolation by:
    1. Creating all tables before the test
    2. Providing a clean database session
    3. Rolling back and dropping everything after the test

    Yields:
        Flask-SQLAlchemy extension bound to the app context.
    """
    with app.app_context():
        db.create_all()
        yield db
        db.session.rollback()
        db.drop_all()


@pytest.fixture
def measurement() -> FakeMeasurement:
    """Scripted measurement collaborator; never touches the network."""
    return FakeMeasurement()


@pytest.fixture(autouse=True)
def sweep_controller(app, monkeypatch, measurement) -> SweepController:
    """
    Install a fresh sweep controller for every test.

    The controller uses the scripted measurement, the real database
    insert and index loader, and no delay between sites.
    """
    controller = SweepController(
        measure=measurement,
        persist=record_metric,
        delay_seconds=0,
        sleep=lambda _seconds: None,
        load_index=latest_metrics,
    )
    monkeypatch.setitem(app.extensions, SWEEP_EXTENSION, controller)
    return controller


# -----------------------------------------------------------------------------
# Test Data Factory Fixtures
# -----------------------------------------------------------------------------

@pytest.fixture
def customer_factory(db_session):
    """
    Factory fixture for creating Customer instances.

    Example:
        def test_something(customer_factory):
            customer = customer_factory(name="Acme")
            assert customer.id is not None
    """

    def _create_customer(
        name: str | None = None,
        email: str | None = None,
        company_name: str | None = None,
        **extra: Any
    ) -> Customer:
        customer = Customer(
            name=name or fake.name(),
            email=email or fake.email(),
            company_name=company_name or fake.company(),
            country=extra.pop("country", fake.country()),
            **extra
        )
        db_session.session.add(customer)
        db_session.session.commit()
        return customer

    return _create_customer


@pytest.fixture
def website_factory(db_session):
    """Factory fixture for creating Website instances."""

    def _create_website(
        name: str | None = None,
        url: str | None = None,
        customer: Customer | None = None
    ) -> Website:
        website = Website(
            name=name or fake.domain_word().title(),
            url=url or fake.url(),
            customer_id=customer.id if customer else None
        )
        db_session.session.add(website)
        db_session.session.commit()
        return website

    return _create_website


@pytest.fixture
def metric_factory(db_session):
    """
    Factory fixture for creating PerformanceMetric rows.

    ``age_minutes`` sets the capture timestamp relative to now so tests
    can control which record is the latest.
    """

    def _create_metric(
        website: Website,
        mobile_score: float = 92,
        desktop_score: float = 97,
        age_minutes: int = 0,
        **overrides: Any
    ) -> PerformanceMetric:
        result = make_result(mobile_score, desktop_score, **overrides)
        metric = PerformanceMetric(
            website_id=website.id,
            timestamp=datetime.now(timezone.utc) - timedelta(minutes=age_minutes),
            status=result.status,
            **result.metric_fields()
        )
        db_session.session.add(metric)
        db_session.session.commit()
        return metric

    return _create_metric


@pytest.fixture
def scored_websites(website_factory, metric_factory) -> dict[str, Website]:
    """
    Three websites whose latest best scores are 95, 70 and 30.

    Older records with different scores exist for each site so that
    tests notice if anything other than the latest record is used.
    """
    sites = {
        "fast": website_factory(name="Fast Site", url="https://fast.example.com"),
        "medium": website_factory(name="Medium Site", url="https://medium.example.com"),
        "slow": website_factory(name="Slow Site", url="https://slow.example.com"),
    }
    metric_factory(sites["fast"], mobile_score=20, desktop_score=30, age_minutes=60)
    metric_factory(sites["fast"], mobile_score=95, desktop_score=60)
    metric_factory(sites["medium"], mobile_score=99, desktop_score=99, age_minutes=60)
    metric_factory(sites["medium"], mobile_score=40, desktop_score=70)
    metric_factory(sites["slow"], mobile_score=95, desktop_score=95, age_minutes=60)
    metric_factory(sites["slow"], mobile_score=30, desktop_score=25)
    return sites


# -----------------------------------------------------------------------------
# Test Data Fixtures
# -----------------------------------------------------------------------------

@pytest.fixture
def valid_customer_data() -> dict[str, Any]:
    """Provide valid customer data for POST/PUT requests."""
    return {
        "name": "Jane Doe",
        "email": "jane@example.com",
        "company_name": "Doe Industries",
        "phone": "+1 555 0100",
        "city": "Springfield",
        "country": "US",
        "last_contacted_at": datetime(2025, 1, 15, 10, 30, tzinfo=timezone.utc).isoformat(),
    }


@pytest.fixture
def valid_website_data() -> dict[str, Any]:
    """Provide valid website data for POST requests."""
    return {"name": "Example", "url": "https://www.example.com"}


# -----------------------------------------------------------------------------
# API Helper Fixtures
# -----------------------------------------------------------------------------

@pytest.fixture
def api_headers() -> dict[str, str]:
    """
    Provide common headers for API requests.

    Returns:
        Dictionary of HTTP headers.
    """
    return {
        "Content-Type": "application/json",
        "Accept": "application/json"
    }
