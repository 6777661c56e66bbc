"""
Database access helpers shared by the API, the views and the sweep.

Every write commits immediately. Any ``SQLAlchemyError`` is rolled back
and re-raised as ``PersistenceFailure`` so callers only deal with one
error type.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from monitor_app import db
from monitor_app.errors import PersistenceFailure
from monitor_app.filtering import LatestMetricIndex
from monitor_app.models import Customer, MetricOutcome, PerformanceMetric, Website
from monitor_app.pagespeed import METRIC_FIELD_NAMES, PageSpeedResult
from monitor_app.sweep import SweepTarget

logger = logging.getLogger(__name__)


def _commit(action: str) -> None:
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error(f"Failed to {action}: {exc}")
        raise PersistenceFailure(f"Failed to {action}") from exc


def _scalars(stmt, action: str) -> list:
    try:
        return list(db.session.scalars(stmt).all())
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error(f"Failed to {action}: {exc}")
        raise PersistenceFailure(f"Failed to {action}") from exc


# -----------------------------------------------------------------------------
# Customers
# -----------------------------------------------------------------------------

def list_customers() -> list[Customer]:
    return _scalars(select(Customer).order_by(Customer.name.asc()), "load customers")


def save_customer(customer: Customer) -> Customer:
    db.session.add(customer)
    _commit("save customer")
    return customer


def delete_customer(customer: Customer) -> None:
    """Delete a customer; its websites stay and lose their owner."""
    for website in list(customer.websites):
        website.customer_id = None
    db.session.delete(customer)
    _commit("delete customer")


# -----------------------------------------------------------------------------
# Websites
# -----------------------------------------------------------------------------

def list_websites() -> list[Website]:
    """Websites in the order they were added."""
    return _scalars(select(Website).order_by(Website.id.asc()), "load websites")


def save_website(website: Website) -> Website:
    db.session.add(website)
    _commit("save website")
    return website


def delete_website(website: Website) -> None:
    """Delete a website together with its metric history."""
    db.session.delete(website)
    _commit("delete website")


# -----------------------------------------------------------------------------
# Performance metrics
# -----------------------------------------------------------------------------

def record_metric(website: SweepTarget | Website, result: PageSpeedResult) -> PerformanceMetric:
    """
    Insert a metric record for a successful measurement.

    The capture timestamp is taken here, at insertion time. The website
    is looked up again first, since it may have been deleted while it
    was being measured.

    Raises:
        PersistenceFailure: If the website no longer exists or the insert
            cannot be committed.
    """
    url = website.url
    if not _scalars(select(Website.id).where(Website.id == website.id), f"look up website {url}"):
        logger.warning(f"Website {website.id} was deleted; not storing metrics for {url}")
        raise PersistenceFailure(f"Website {website.id} no longer exists")

    metric = PerformanceMetric(
        website_id=website.id,
        timestamp=datetime.now(timezone.utc),
        status=MetricOutcome.SUCCESS.value,
        **{name: getattr(result, name) for name in METRIC_FIELD_NAMES},
    )
    db.session.add(metric)
    _commit(f"store metrics for {url}")
    # Detached so later commits in the same sweep do not expire it
    db.session.refresh(metric)
    db.session.expunge(metric)
    return metric


def recent_metrics(limit: int) -> list[PerformanceMetric]:
    """Most recent metric records across all websites, newest first."""
    stmt = (
        select(PerformanceMetric)
        .order_by(PerformanceMetric.timestamp.desc(), PerformanceMetric.id.desc())
        .limit(limit)
    )
    return _scalars(stmt, "load metrics")


def metric_history(website_id: int) -> list[PerformanceMetric]:
    stmt = (
        select(PerformanceMetric)
        .where(PerformanceMetric.website_id == website_id)
        .order_by(PerformanceMetric.timestamp.desc(), PerformanceMetric.id.desc())
    )
    return _scalars(stmt, "load metric history")


def latest_metrics() -> LatestMetricIndex:
    """
    Build the latest-metric index from the database.

    Only rows carrying their website's maximum timestamp are loaded; the
    index settles timestamp ties by id.
    """
    newest = (
        select(
            PerformanceMetric.website_id,
            func.max(PerformanceMetric.timestamp).label("newest")
        )
        .group_by(PerformanceMetric.website_id)
        .subquery()
    )
    stmt = select(PerformanceMetric).join(
        newest,
        (PerformanceMetric.website_id == newest.c.website_id)
        & (PerformanceMetric.timestamp == newest.c.newest)
    )
    return LatestMetricIndex(_scalars(stmt, "load latest metrics"))
