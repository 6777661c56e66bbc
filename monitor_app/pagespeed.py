"""
Google PageSpeed Insights client.

Runs a Lighthouse performance audit for a URL with both the ``mobile``
and ``desktop`` strategies and flattens the interesting numbers into a
``PageSpeedResult``. The client never raises for API problems: transport
errors, non-200 responses and malformed payloads all produce a result
whose ``status`` is ``error``.
"""

from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass, fields
from typing import Any

import requests

from monitor_app.models import MetricOutcome

logger = logging.getLogger(__name__)

STRATEGIES = ("mobile", "desktop")


@dataclass(frozen=True)
class PageSpeedResult:
    """Scores and vitals for one URL, mobile and desktop side by side."""

    status: str
    mobile_score: float = 0.0
    desktop_score: float = 0.0
    mobile_fcp: float = 0.0
    mobile_lcp: float = 0.0
    mobile_cls: float = 0.0
    mobile_fid: float = 0.0
    mobile_inp: float = 0.0
    mobile_worst_cluster: int = 0
    desktop_fcp: float = 0.0
    desktop_lcp: float = 0.0
    desktop_cls: float = 0.0
    desktop_fid: float = 0.0
    desktop_inp: float = 0.0
    desktop_worst_cluster: int = 0
    error_message: str | None = None

    @classmethod
    def error(cls, message: str) -> PageSpeedResult:
        return cls(status=MetricOutcome.ERROR.value, error_message=message)

    @property
    def is_success(self) -> bool:
        return self.status == MetricOutcome.SUCCESS.value

    def metric_fields(self) -> dict[str, float]:
        """Return only the numeric measurement fields."""
        data = asdict(self)
        data.pop("status")
        data.pop("error_message")
        return data

    def is_finite(self) -> bool:
        return all(
            isinstance(value, (int, float)) and math.isfinite(value)
            for value in self.metric_fields().values()
        )


METRIC_FIELD_NAMES = [
    f.name for f in fields(PageSpeedResult) if f.name not in ("status", "error_message")
]


def _numeric_value(audits: dict[str, Any], audit_id: str) -> float:
    return float(audits[audit_id]["numericValue"])


def _interaction_to_next_paint(data: dict[str, Any], fallback: float) -> float:
    """
    Read INP from the field data (CrUX) section when available.

    Lab runs have no real interactions, so sites without field data fall
    back to Lighthouse's max potential FID.
    """
    field_metrics = (data.get("loadingExperience") or {}).get("metrics") or {}
    inp = field_metrics.get("INTERACTION_TO_NEXT_PAINT") or {}
    if "percentile" in inp:
        return float(inp["percentile"])
    return fallback


def _worst_cluster(audits: dict[str, Any]) -> int:
    """
    Number of shifts listed by the ``layout-shifts`` audit.

    Lighthouse lists the largest shifts of the whole page (at most 15),
    not the members of one session window. The count stands in for the
    worst-cluster value, and classification only tells 0, 1 and 2 or
    more apart.
    """
    details = (audits.get("layout-shifts") or {}).get("details") or {}
    return len(details.get("items") or [])


def parse_strategy_payload(data: dict[str, Any]) -> dict[str, float]:
    """
    Extract score and vitals from one ``runPagespeed`` response body.

    Raises:
        KeyError, TypeError, ValueError: If the payload lacks a Lighthouse
            result or one of the required audits.
    """
    lighthouse = data["lighthouseResult"]
    audits = lighthouse["audits"]
    fid = _numeric_value(audits, "max-potential-fid")
    return {
        "score": float(lighthouse["categories"]["performance"]["score"]) * 100,
        "fcp": _numeric_value(audits, "first-contentful-paint"),
        "lcp": _numeric_value(audits, "largest-contentful-paint"),
        "cls": _numeric_value(audits, "cumulative-layout-shift"),
        "fid": fid,
        "inp": _interaction_to_next_paint(data, fid),
        "worst_cluster": _worst_cluster(audits),
    }


class PageSpeedClient:
    """
    Thin wrapper around the PageSpeed Insights ``runPagespeed`` endpoint.

    Args:
        api_url: Endpoint URL.
        api_key: Google API key; omitted from the request when empty.
        timeout: Per-request timeout in seconds.
    """

    def __init__(self, api_url: str, api_key: str = "", timeout: float = 60):
        self.api_url = api_url
        self.api_key = api_key
        self.timeout = timeout

    def _fetch(self, url: str, strategy: str) -> dict[str, Any]:
        params = {"url": url, "strategy": strategy, "category": "performance"}
        if self.api_key:
            params["key"] = self.api_key
        response = requests.get(self.api_url, params=params, timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    def check(self, url: str) -> PageSpeedResult:
        """
        Measure ``url`` with the mobile strategy, then the desktop one.

        Args:
            url: Absolute address of the page to audit.

        Returns:
            A successful ``PageSpeedResult``, or one with ``status="error"``
            and an ``error_message`` when either strategy fails.
        """
        values: dict[str, float] = {}
        try:
            for strategy in STRATEGIES:
                parsed = parse_strategy_payload(self._fetch(url, strategy))
                if strategy == "mobile":
                    values["mobile_score"] = parsed.pop("score")
                else:
                    values["desktop_score"] = parsed.pop("score")
                for name, value in parsed.items():
                    values[f"{strategy}_{name}"] = value
        except requests.Timeout:
            logger.error(f"PageSpeed request for {url} timed out after {self.timeout}s")
            return PageSpeedResult.error("Measurement request timed out")
        except requests.RequestException as exc:
            logger.error(f"PageSpeed request for {url} failed: {exc}")
            return PageSpeedResult.error(f"Measurement request failed: {exc}")
        except (KeyError, TypeError, ValueError) as exc:
            logger.error(f"Unexpected PageSpeed payload for {url}: {exc!r}")
            return PageSpeedResult.error("Measurement response was malformed")

        return PageSpeedResult(status=MetricOutcome.SUCCESS.value, **values)
