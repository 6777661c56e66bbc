"""
Playwright fixtures for UI tests.

This module provides fixtures specific to browser-based UI testing
using Playwright. The session's Flask app is served from a background
thread; the autouse ``sweep_controller`` fixture from the root conftest
still applies, so sweeps started from the browser use the scripted
``measurement`` and never reach the PageSpeed API.

Key Concepts Demonstrated:
- Live server fixture for Playwright
- Browser context management
- Screenshot capture on failure
- Page object initialization
"""

import os
import threading
import time
from typing import Generator

import pytest
from playwright.sync_api import Browser, BrowserContext, Page

from monitor_app import db
from monitor_app.models import Customer, PerformanceMetric, Website
from tests.ui.pages import CustomerFormPage, CustomerListPage, WebsiteFormPage, WebsiteListPage


def _clear_tables() -> None:
    db.session.query(PerformanceMetric).delete()
    db.session.query(Website).delete()
    db.session.query(Customer).delete()
    db.session.commit()


# -----------------------------------------------------------------------------
# Server Fixtures
# -----------------------------------------------------------------------------

@pytest.fixture(scope="session")
def live_server(app):
    """
    Start a live Flask server for Playwright tests.

    Yields:
        str: Base URL of the running server.
    """
    host = "127.0.0.1"
    port = 5001

    with app.app_context():
        db.create_all()

    server_thread = threading.Thread(
        target=lambda: app.run(host=host, port=port, use_reloader=False, threaded=True)
    )
    server_thread.daemon = True
    server_thread.start()

    # Give server time to start
    time.sleep(1)

    yield f"http://{host}:{port}"


@pytest.fixture(scope="function")
def clean_db(app):
    """
    Empty every table before and after a UI test.

    Rows are deleted rather than tables dropped because the live server
    thread keeps using the schema.
    """
    with app.app_context():
        db.create_all()
        _clear_tables()
        yield db
        db.session.rollback()
        _clear_tables()


# -----------------------------------------------------------------------------
# Browser Fixtures
# -----------------------------------------------------------------------------

@pytest.fixture(scope="session")
def browser_context_args():
    return {
        "viewport": {"width": 1280, "height": 720},
        "ignore_https_errors": True,
    }


@pytest.fixture(scope="function")
def context(browser: Browser, browser_context_args: dict) -> Generator[BrowserContext, None, None]:
    """Fresh browser context per test so cookies and flashes are not shared."""
    context = browser.new_context(**browser_context_args)
    yield context
    context.close()


@pytest.fixture(scope="function")
def page(context: BrowserContext) -> Generator[Page, None, None]:
    page = context.new_page()
    yield page
    page.close()


# -----------------------------------------------------------------------------
# Page Object Fixtures
# -----------------------------------------------------------------------------

@pytest.fixture
def website_list_page(page: Page, live_server: str, clean_db) -> WebsiteListPage:
    """Website list page object (not yet navigated)."""
    return WebsiteListPage(page, live_server)


@pytest.fixture
def website_form_page(page: Page, live_server: str, clean_db) -> WebsiteFormPage:
    """Add-website form, already opened."""
    return WebsiteFormPage(page, live_server).navigate()


@pytest.fixture
def customer_list_page(page: Page, live_server: str, clean_db) -> CustomerListPage:
    return CustomerListPage(page, live_server)


@pytest.fixture
def customer_form_page(page: Page, live_server: str, clean_db) -> CustomerFormPage:
    return CustomerFormPage(page, live_server)


# -----------------------------------------------------------------------------
# Screenshot on Failure
# -----------------------------------------------------------------------------

@pytest.hookimpl(tryfirst=True, hookwrapper=True)
def pytest_runtest_makereport(item, call):
    """Capture a screenshot when a UI test fails."""
    outcome = yield
    report = outcome.get_result()

    if report.when == "call" and report.failed:
        page = item.funcargs.get("page")
        if page:
            screenshot_dir = "test-results/screenshots"
            os.makedirs(screenshot_dir, exist_ok=True)
            test_name = item.name.replace("/", "_").replace("::", "_")
            screenshot_path = f"{screenshot_dir}/{test_name}.png"
            try:
                page.screenshot(path=screenshot_path)
                print(f"\nScreenshot saved: {screenshot_path}")
            except Exception as e:
                print(f"\nFailed to capture screenshot: {e}")
