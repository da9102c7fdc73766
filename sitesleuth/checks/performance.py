"""Coarse performance metrics derived from the main fetch.

Nothing here issues a request; TTFB is a fixed fraction of the load time.
"""

from __future__ import annotations

from typing import Dict, List, Tuple

from ..context import ScanContext
from ..models import METRIC_GOOD, METRIC_NEEDS_IMPROVEMENT, METRIC_POOR, PerformanceMetric

TTFB_SHARE = 0.3
RESOURCE_SELECTOR = 'script, link[rel="stylesheet"], img'

# metric name -> (good below, needs improvement below)
THRESHOLDS: Dict[str, Tuple[float, float]] = {
    "Load Time": (2000, 4000),
    "TTFB": (600, 1000),
    "Page Size": (500_000, 1_000_000),
    "Resource Count": (20, 50),
}

POOR_METRIC_RECOMMENDATIONS = {
    "Load Time": "Optimize images, enable compression, and use a CDN to improve load times",
    "TTFB": "Optimize server response time by improving database queries and caching",
    "Page Size": "Reduce page size by optimizing images, minifying CSS/JS, and removing unused code",
    "Resource Count": "Reduce HTTP requests by combining files, using sprites, and lazy loading",
}


def _grade(name: str, value: float) -> str:
    good, acceptable = THRESHOLDS[name]
    if value < good:
        return METRIC_GOOD
    if value < acceptable:
        return METRIC_NEEDS_IMPROVEMENT
    return METRIC_POOR


def _metric(name: str, value: float, unit: str) -> PerformanceMetric:
    return PerformanceMetric(name=name, value=value, unit=unit, status=_grade(name, value))


def measure(context: ScanContext) -> List[PerformanceMetric]:
    load_time = round(context.load_time_ms, 2)
    return [
        _metric("Load Time", load_time, "ms"),
        _metric("TTFB", round(load_time * TTFB_SHARE, 2), "ms"),
        _metric("Page Size", len(context.response.content), "bytes"),
        _metric("Resource Count", len(context.document.select(RESOURCE_SELECTOR)), "count"),
    ]


def details(metrics: List[PerformanceMetric], context: ScanContext) -> Dict[str, float]:
    by_name = {metric.name: metric.value for metric in metrics}
    return {
        "ttfb": by_name.get("TTFB", 0),
        "lcp": by_name.get("Load Time", 0),
        "cls": 0,
        "fid": 0,
        "pageSize": len(context.response.content),
        "loadTime": round(context.load_time_ms, 2),
    }
