"""
Sequential performance sweep over tracked websites.

A sweep measures every website one at a time, in the order given, and
stores one metric record per successful check. Failures of a single site
(error outcome from the API, an exception, unusable numbers or a failed
insert) are logged, reported as a failure outcome and skipped; they never
stop the sweep and are never retried. After each site the controller
pauses for a fixed delay to stay under the API's rate limit.

Only one sweep may run at a time. Requesting another one while a sweep is
active raises ``ConcurrentSweepRejected`` and touches no site.

The websites are copied into ``SweepTarget`` values before the first
check, so a website deleted by another request during the sweep fails
on its own without reloading ORM state.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from monitor_app.errors import ConcurrentSweepRejected, MeasurementFailure, PersistenceFailure
from monitor_app.filtering import LatestMetricIndex
from monitor_app.models import PerformanceMetric, Website
from monitor_app.pagespeed import PageSpeedResult

logger = logging.getLogger(__name__)

DEFAULT_DELAY_SECONDS = 2.0


class SweepStatus(str, Enum):
    """Whether a sweep is currently in progress."""

    IDLE = "idle"
    RUNNING = "running"


@dataclass(frozen=True)
class SweepTarget:
    """Plain copy of the website fields a sweep reads."""

    id: int
    name: str
    url: str

    @classmethod
    def from_website(cls, website: Website) -> SweepTarget:
        return cls(id=website.id, name=website.name, url=website.url)


Measure = Callable[[str], PageSpeedResult]
Persist = Callable[[SweepTarget, PageSpeedResult], PerformanceMetric]
LoadIndex = Callable[[], LatestMetricIndex]


@dataclass(frozen=True)
class SiteCheckOutcome:
    """Result of checking a single website during a sweep."""

    website_id: int
    website_name: str
    ok: bool
    metric: PerformanceMetric | None = None
    reason: str | None = None

    @classmethod
    def success(cls, website: SweepTarget | Website, metric: PerformanceMetric) -> SiteCheckOutcome:
        return cls(website_id=website.id, website_name=website.name, ok=True, metric=metric)

    @classmethod
    def failure(cls, website: SweepTarget | Website, reason: str) -> SiteCheckOutcome:
        return cls(website_id=website.id, website_name=website.name, ok=False, reason=reason)

    def to_dict(self) -> dict:
        return {
            "website_id": self.website_id,
            "website_name": self.website_name,
            "ok": self.ok,
            "metric": self.metric.to_dict() if self.metric is not None else None,
            "reason": self.reason,
        }


@dataclass
class SweepReport:
    """Outcomes of one complete sweep, in site order."""

    started_at: datetime
    finished_at: datetime | None = None
    outcomes: list[SiteCheckOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> list[SiteCheckOutcome]:
        return [outcome for outcome in self.outcomes if outcome.ok]

    @property
    def failed(self) -> list[SiteCheckOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.ok]

    def to_dict(self) -> dict:
        return {
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "checked": len(self.outcomes),
            "succeeded": len(self.succeeded),
            "failed": len(self.failed),
            "outcomes": [outcome.to_dict() for outcome in self.outcomes],
        }


class SweepController:
    """
    Runs sweeps and keeps the state the UI needs between them.

    The controller owns the latest-metric index the website list is drawn
    from. Every insert made by a sweep is added to it straight away, so a
    page loaded while a sweep is running shows each site as soon as it has
    been checked. Between sweeps the index is rebuilt with ``load_index``.

    Args:
        measure: Measurement collaborator, ``url -> PageSpeedResult``.
        persist: Inserts a metric record for a successful result and
            returns it; raises ``PersistenceFailure`` on failure.
        delay_seconds: Pause after every site, including the last one.
        sleep: Function used to pause, replaceable in tests.
        index: Latest-metric index to update as records are inserted.
        load_index: Builds the index from storage; without it the index
            only holds what sweeps have inserted.
    """

    def __init__(
        self,
        measure: Measure,
        persist: Persist,
        delay_seconds: float = DEFAULT_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
        index: LatestMetricIndex | None = None,
        load_index: LoadIndex | None = None,
    ):
        self.measure = measure
        self.persist = persist
        self.delay_seconds = delay_seconds
        self.sleep = sleep
        self.index = index if index is not None else LatestMetricIndex()
        self.load_index = load_index
        self.last_outcomes: dict[int, SiteCheckOutcome] = {}
        self.last_report: SweepReport | None = None
        self._lock = threading.Lock()
        self._status = SweepStatus.IDLE

    @property
    def status(self) -> SweepStatus:
        return self._status

    @property
    def is_running(self) -> bool:
        return self._status is SweepStatus.RUNNING

    def latest_metrics(self) -> LatestMetricIndex:
        """
        Latest metric per website, for display.

        While a sweep runs, the index it updates after every insert is
        returned as is. Otherwise the index is first rebuilt from storage,
        which picks up records written by other processes such as
        ``flask check-websites``.
        """
        if not self.is_running and self.load_index is not None:
            self.index = self.load_index()
        return self.index

    def run(self, websites: Iterable[Website]) -> SweepReport:
        """
        Check every website in order.

        Args:
            websites: Websites to check, in the order they are displayed.

        Returns:
            The report of the finished sweep.

        Raises:
            ConcurrentSweepRejected: If a sweep is already running.
        """
        if not self._lock.acquire(blocking=False):
            logger.warning("Sweep requested while another sweep is running; ignoring")
            raise ConcurrentSweepRejected()

        try:
            self._status = SweepStatus.RUNNING
            queue = [SweepTarget.from_website(website) for website in websites]
            report = SweepReport(started_at=datetime.now(timezone.utc))
            self.last_report = report
            logger.info(f"Starting sweep over {len(queue)} websites")

            for target in queue:
                outcome = self.check_site(target)
                report.outcomes.append(outcome)
                self.last_outcomes[target.id] = outcome
                self.sleep(self.delay_seconds)

            report.finished_at = datetime.now(timezone.utc)
            logger.info(
                f"Sweep finished: {len(report.succeeded)} succeeded, "
                f"{len(report.failed)} failed"
            )
            return report
        finally:
            self._status = SweepStatus.IDLE
            self._lock.release()

    def check_site(self, target: SweepTarget) -> SiteCheckOutcome:
        """
        Measure one website and store the result.

        Never raises: every failure becomes a failure outcome.
        """
        try:
            result = self.measure(target.url)
            if not result.is_success:
                raise MeasurementFailure(result.error_message or "API returned error status")
            if not result.is_finite():
                raise MeasurementFailure("API returned non-finite values")
            metric = self.persist(target, result)
        except (MeasurementFailure, PersistenceFailure) as exc:
            logger.error(f"Failed to check {target.name}: {exc}")
            return SiteCheckOutcome.failure(target, str(exc))
        except Exception as exc:
            # The measurement collaborator may fail in any way
            logger.exception(f"Failed to check {target.name}")
            return SiteCheckOutcome.failure(target, f"Unexpected error: {exc}")

        self.index.add(metric)
        logger.info(f"Checked {target.name}: mobile={result.mobile_score} desktop={result.desktop_score}")
        return SiteCheckOutcome.success(target, metric)

    def forget(self, website_id: int) -> None:
        """Drop in-memory state for a deleted website."""
        self.last_outcomes.pop(website_id, None)
        self.index.discard(website_id)
