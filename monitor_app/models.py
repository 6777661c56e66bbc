"""
Database models for the Site Monitor application.

This module defines SQLAlchemy models representing the data structure
of the application. Each model maps to a database table:

- customers: people or companies that own websites
- websites: tracked sites whose performance is checked
- performance_metrics: one row per completed PageSpeed check
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from monitor_app import db


class MetricOutcome(str, Enum):
    """Enumeration of measurement outcomes."""

    SUCCESS = "success"
    ERROR = "error"


def ensure_utc(value: datetime) -> datetime:
    """Normalize datetimes to timezone-aware UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _to_utc_iso(value: datetime | None) -> str | None:
    """
    Convert datetime to an ISO-8601 UTC string.

    SQLite commonly returns naive datetime values even when timezone-aware
    columns are declared. For API contracts, always normalize to UTC.
    """
    if value is None:
        return None
    return ensure_utc(value).isoformat()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Customer(db.Model):
    """
    Customer model representing the owner of one or more websites.

    Attributes:
        id: Unique identifier for the customer.
        name: Contact name.
        company_name: Optional company name.
        email: Contact email address.
        phone, address, city, state, postal_code, country: Contact details.
        notes: Free-form notes.
        last_contacted_at: When the customer was last contacted.
        created_at: Timestamp when the customer was created.
        updated_at: Timestamp when the customer was last modified.
    """

    __tablename__ = "customers"

    id: int = db.Column(db.Integer, primary_key=True)
    name: str = db.Column(db.String(200), nullable=False)
    company_name: str | None = db.Column(db.String(200), nullable=True)
    email: str = db.Column(db.String(254), nullable=False)
    phone: str | None = db.Column(db.String(50), nullable=True)
    address: str | None = db.Column(db.String(255), nullable=True)
    city: str | None = db.Column(db.String(100), nullable=True)
    state: str | None = db.Column(db.String(100), nullable=True)
    postal_code: str | None = db.Column(db.String(20), nullable=True)
    country: str = db.Column(db.String(100), nullable=False, default="")
    notes: str | None = db.Column(db.Text, nullable=True)
    last_contacted_at: datetime | None = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at: datetime = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=_utcnow
    )
    updated_at: datetime = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow
    )

    websites = db.relationship("Website", back_populates="customer")

    def to_dict(self) -> dict[str, Any]:
        """
        Convert the customer to a dictionary representation.

        Returns:
            Dictionary containing all customer fields.
        """
        return {
            "id": self.id,
            "name": self.name,
            "company_name": self.company_name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "postal_code": self.postal_code,
            "country": self.country,
            "notes": self.notes,
            "last_contacted_at": _to_utc_iso(self.last_contacted_at),
            "created_at": _to_utc_iso(self.created_at),
            "updated_at": _to_utc_iso(self.updated_at),
        }

    def __repr__(self) -> str:
        """Return string representation of the customer."""
        return f"<Customer {self.id}: {self.name}>"


class Website(db.Model):
    """
    Website model representing a tracked site.

    A website is created from a form submission and deleted on explicit
    user action; it is never edited in between.

    Attributes:
        id: Unique identifier for the website.
        name: Display name.
        url: Absolute http(s) address that is measured.
        customer_id: Optional reference to the owning customer.
        created_at: Timestamp when the website was added.
    """

    __tablename__ = "websites"

    id: int = db.Column(db.Integer, primary_key=True)
    name: str = db.Column(db.String(200), nullable=False)
    url: str = db.Column(db.String(2048), nullable=False)
    customer_id: int | None = db.Column(
        db.Integer,
        db.ForeignKey("customers.id", ondelete="SET NULL"),
        nullable=True
    )
    created_at: datetime = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=_utcnow
    )

    customer = db.relationship("Customer", back_populates="websites")
    metrics = db.relationship(
        "PerformanceMetric",
        back_populates="website",
        cascade="all, delete-orphan"
    )

    def to_dict(self) -> dict[str, Any]:
        """Convert the website to a dictionary representation."""
        return {
            "id": self.id,
            "name": self.name,
            "url": self.url,
            "customer_id": self.customer_id,
            "created_at": _to_utc_iso(self.created_at),
        }

    def __repr__(self) -> str:
        """Return string representation of the website."""
        return f"<Website {self.id}: {self.url}>"


class PerformanceMetric(db.Model):
    """
    Result of one completed performance check of a website.

    Rows are inserted once and never modified. The capture ``timestamp``
    is taken at insertion time, not when the measurement was requested.
    Times are in milliseconds, CLS is unitless and scores range 0-100.
    """

    __tablename__ = "performance_metrics"

    id: int = db.Column(db.Integer, primary_key=True)
    website_id: int = db.Column(
        db.Integer,
        db.ForeignKey("websites.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    timestamp: datetime = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        index=True
    )
    mobile_score: float = db.Column(db.Float, nullable=False)
    desktop_score: float = db.Column(db.Float, nullable=False)
    mobile_fcp: float = db.Column(db.Float, nullable=False)
    mobile_lcp: float = db.Column(db.Float, nullable=False)
    mobile_cls: float = db.Column(db.Float, nullable=False)
    mobile_fid: float = db.Column(db.Float, nullable=False)
    mobile_inp: float = db.Column(db.Float, nullable=False)
    mobile_worst_cluster: int = db.Column(db.Integer, nullable=False, default=0)
    desktop_fcp: float = db.Column(db.Float, nullable=False)
    desktop_lcp: float = db.Column(db.Float, nullable=False)
    desktop_cls: float = db.Column(db.Float, nullable=False)
    desktop_fid: float = db.Column(db.Float, nullable=False)
    desktop_inp: float = db.Column(db.Float, nullable=False)
    desktop_worst_cluster: int = db.Column(db.Integer, nullable=False, default=0)
    status: str = db.Column(
        db.String(20),
        nullable=False,
        default=MetricOutcome.SUCCESS.value
    )

    website = db.relationship("Website", back_populates="metrics")

    @property
    def captured_at(self) -> datetime:
        """Capture timestamp normalized to UTC."""
        return ensure_utc(self.timestamp)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert the metric record to a dictionary representation.

        Returns:
            Dictionary containing all metric fields.
        """
        return {
            "id": self.id,
            "website_id": self.website_id,
            "timestamp": _to_utc_iso(self.timestamp),
            "mobile_score": self.mobile_score,
            "desktop_score": self.desktop_score,
            "mobile_fcp": self.mobile_fcp,
            "mobile_lcp": self.mobile_lcp,
            "mobile_cls": self.mobile_cls,
            "mobile_fid": self.mobile_fid,
            "mobile_inp": self.mobile_inp,
            "mobile_worst_cluster": self.mobile_worst_cluster,
            "desktop_fcp": self.desktop_fcp,
            "desktop_lcp": self.desktop_lcp,
            "desktop_cls": self.desktop_cls,
            "desktop_fid": self.desktop_fid,
            "desktop_inp": self.desktop_inp,
            "desktop_worst_cluster": self.desktop_worst_cluster,
            "status": self.status,
        }

    def __repr__(self) -> str:
        """Return string representation of the metric record."""
        return f"<PerformanceMetric {self.id}: website={self.website_id}>"
