"""
Threshold classification for Core Web Vitals and overall scores.

Two independent scales live here and must not be mixed:

* the per-metric scale (``Severity``: Good < Needs Improvement < Poor)
  used for LCP, CLS, INP, FCP and the worst layout-shift cluster;
* the aggregate site status (``SiteStatus``: Good / Poor / Very Poor)
  derived from the best of the mobile and desktop scores.

Every function is total over floats. Comparisons cascade from the best
tier down, so negative values land in the best tier and NaN, which fails
every comparison, lands in the worst one.
"""

from enum import Enum, IntEnum
from typing import NamedTuple


class Severity(IntEnum):
    """Per-metric severity, ordered from best to worst."""

    GOOD = 0
    NEEDS_IMPROVEMENT = 1
    POOR = 2

    @property
    def label(self) -> str:
        return _SEVERITY_LABELS[self]


_SEVERITY_LABELS = {
    Severity.GOOD: "Good",
    Severity.NEEDS_IMPROVEMENT: "Needs Improvement",
    Severity.POOR: "Poor",
}


class Classification(NamedTuple):
    """Outcome of classifying a single metric value."""

    label: str
    severity: Severity


class SiteStatus(str, Enum):
    """Aggregate site status derived from the overall score."""

    GOOD = "good"
    POOR = "poor"
    VERY_POOR = "very_poor"

    @property
    def label(self) -> str:
        return _SITE_STATUS_LABELS[self]


_SITE_STATUS_LABELS = {
    SiteStatus.GOOD: "Good",
    SiteStatus.POOR: "Poor",
    SiteStatus.VERY_POOR: "Very Poor",
}


class SpeedTier(str, Enum):
    """Speed bucket derived from the overall score."""

    FAST = "fast"
    MEDIUM = "medium"
    SLOW = "slow"


# (good_max, needs_improvement_max); None means no middle tier
LCP_BREAKPOINTS_MS = (2500, 4000)
CLS_BREAKPOINTS = (0.10, 0.25)
INP_BREAKPOINTS_MS = (100, None)
FCP_BREAKPOINTS_MS = (1800, 3000)
WORST_CLUSTER_BREAKPOINTS = (0, 1)

GOOD_SCORE = 90
POOR_SCORE = 50


def _classify(value: float, breakpoints: tuple[float, float | None]) -> Classification:
    good_max, needs_improvement_max = breakpoints
    if value <= good_max:
        severity = Severity.GOOD
    elif needs_improvement_max is not None and value <= needs_improvement_max:
        severity = Severity.NEEDS_IMPROVEMENT
    else:
        severity = Severity.POOR
    return Classification(severity.label, severity)


def classify_lcp(value_ms: float) -> Classification:
    """Classify a Largest Contentful Paint time in milliseconds."""
    return _classify(value_ms, LCP_BREAKPOINTS_MS)


def classify_cls(value: float) -> Classification:
    """Classify a Cumulative Layout Shift value."""
    return _classify(value, CLS_BREAKPOINTS)


def classify_inp(value_ms: float) -> Classification:
    """Classify an Interaction to Next Paint time. There is no middle tier."""
    return _classify(value_ms, INP_BREAKPOINTS_MS)


def classify_fcp(value_ms: float) -> Classification:
    """Classify a First Contentful Paint time in milliseconds."""
    return _classify(value_ms, FCP_BREAKPOINTS_MS)


def classify_worst_cluster(count: float) -> Classification:
    """Classify the worst layout-shift cluster ordinal (0, 1 or 2+)."""
    return _classify(count, WORST_CLUSTER_BREAKPOINTS)


def classify_site_status(score: float) -> SiteStatus:
    """
    Classify an overall score (0-100) into the aggregate site status.

    Args:
        score: Performance score, usually ``site_score(metric)``.

    Returns:
        GOOD for >= 90, POOR for >= 50, VERY_POOR otherwise (NaN included).
    """
    if score >= GOOD_SCORE:
        return SiteStatus.GOOD
    if score >= POOR_SCORE:
        return SiteStatus.POOR
    return SiteStatus.VERY_POOR


def speed_tier(score: float) -> SpeedTier:
    """Bucket an overall score into fast (>= 90), medium (50-89) or slow."""
    if score >= GOOD_SCORE:
        return SpeedTier.FAST
    if score >= POOR_SCORE:
        return SpeedTier.MEDIUM
    return SpeedTier.SLOW


def site_score(metric) -> float:
    """Best of the mobile and desktop scores of a metric record."""
    return max(metric.mobile_score, metric.desktop_score)


def describe_metric(metric) -> dict:
    """
    Classify every vital of a metric record for display.

    Returns:
        Dictionary with the site status, speed tier and a per-device
        mapping of vital name to ``{"label", "severity"}``.
    """
    score = site_score(metric)
    devices = {}
    for device in ("mobile", "desktop"):
        vitals = {
            "fcp": classify_fcp(getattr(metric, f"{device}_fcp")),
            "lcp": classify_lcp(getattr(metric, f"{device}_lcp")),
            "cls": classify_cls(getattr(metric, f"{device}_cls")),
            "inp": classify_inp(getattr(metric, f"{device}_inp")),
            "worst_cluster": classify_worst_cluster(getattr(metric, f"{device}_worst_cluster")),
        }
        devices[device] = {
            name: {"label": result.label, "severity": result.severity.name.lower()}
            for name, result in vitals.items()
        }
    status = classify_site_status(score)
    return {
        "score": score,
        "status": status.value,
        "status_label": status.label,
        "speed": speed_tier(score).value,
        "vitals": devices,
    }
