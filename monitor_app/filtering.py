"""
Derivation of the displayed website list.

The latest metric of a website is the record with the greatest capture
timestamp (ties go to the larger id). ``LatestMetricIndex`` keeps that
mapping explicitly so the result never depends on the order in which
records were loaded or appended.
"""

from collections.abc import Iterable, Mapping
from enum import Enum

from monitor_app.models import PerformanceMetric, Website
from monitor_app.thresholds import classify_site_status, site_score, speed_tier

ALL = "all"


class CheckState(str, Enum):
    """What the UI knows about a website's most recent check."""

    OK = "ok"
    FAILED = "failed"
    NO_DATA = "no_data"


class LatestMetricIndex:
    """Mapping of website id to its most recent ``PerformanceMetric``."""

    def __init__(self, metrics: Iterable[PerformanceMetric] = ()):
        self._latest: dict[int, PerformanceMetric] = {}
        for metric in metrics:
            self.add(metric)

    def add(self, metric: PerformanceMetric) -> bool:
        """
        Record ``metric`` if it is newer than the one already indexed.

        Returns:
            True if the index now points at ``metric``.
        """
        current = self._latest.get(metric.website_id)
        if current is not None:
            newer = (metric.captured_at, metric.id or 0) > (current.captured_at, current.id or 0)
            if not newer:
                return False
        self._latest[metric.website_id] = metric
        return True

    def get(self, website_id: int) -> PerformanceMetric | None:
        return self._latest.get(website_id)

    def discard(self, website_id: int) -> None:
        self._latest.pop(website_id, None)

    def __contains__(self, website_id: object) -> bool:
        return website_id in self._latest

    def __len__(self) -> int:
        return len(self._latest)


def matches_filters(metric: PerformanceMetric, status_filter: str = ALL, speed_filter: str = ALL) -> bool:
    """Check a metric record against the status and speed selectors."""
    score = site_score(metric)
    if status_filter != ALL and classify_site_status(score).value != status_filter:
        return False
    if speed_filter != ALL and speed_tier(score).value != speed_filter:
        return False
    return True


def filter_websites(
    websites: Iterable[Website],
    index: LatestMetricIndex,
    status_filter: str = ALL,
    speed_filter: str = ALL,
) -> list[Website]:
    """
    Select the websites to display, preserving input order.

    Websites without any metric record are always excluded. The two
    selectors are ANDed and ``"all"`` disables a selector.

    Args:
        websites: Candidate websites in display order.
        index: Latest metric per website.
        status_filter: ``all``, ``good``, ``poor`` or ``very_poor``.
        speed_filter: ``all``, ``fast``, ``medium`` or ``slow``.

    Returns:
        The matching websites.
    """
    selected = []
    for website in websites:
        metric = index.get(website.id)
        if metric is None:
            continue
        if matches_filters(metric, status_filter, speed_filter):
            selected.append(website)
    return selected


def check_state(website_id: int, index: LatestMetricIndex, last_outcomes: Mapping) -> CheckState:
    """
    Distinguish "no data yet" from "check failed" for one website.

    A failure in the most recent sweep takes precedence over older
    stored data.
    """
    outcome = last_outcomes.get(website_id)
    if outcome is not None and not outcome.ok:
        return CheckState.FAILED
    if website_id in index:
        return CheckState.OK
    return CheckState.NO_DATA
