"""Category scores, issues and the recommendation list."""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence

from .checks.performance import POOR_METRIC_RECOMMENDATIONS
from .models import (
    METRIC_GOOD,
    METRIC_NEEDS_IMPROVEMENT,
    METRIC_POOR,
    STATUS_FAIL,
    STATUS_PASS,
    STATUS_WARNING,
    CategoryReport,
    CheckResult,
    PerformanceMetric,
    PerformanceReport,
    ScanResult,
)

METRIC_TO_CHECK_STATUS = {
    METRIC_GOOD: STATUS_PASS,
    METRIC_NEEDS_IMPROVEMENT: STATUS_WARNING,
    METRIC_POOR: STATUS_FAIL,
}


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_score(statuses: Iterable[str]) -> int:
    """``round(100 * (pass + 0.5 * warning) / total)``; an empty list scores 100."""
    items = list(statuses)
    if not items:
        return 100
    passed = sum(1 for status in items if status == STATUS_PASS)
    warned = sum(1 for status in items if status == STATUS_WARNING)
    return round_half_up(100 * (passed + 0.5 * warned) / len(items))


def score_checks(checks: Sequence[CheckResult]) -> int:
    return calculate_score(check.status for check in checks)


def score_metrics(metrics: Sequence[PerformanceMetric]) -> int:
    return calculate_score(METRIC_TO_CHECK_STATUS[metric.status] for metric in metrics)


def collect_issues(checks: Sequence[CheckResult]) -> List[str]:
    return [check.description for check in checks if check.failed]


def build_category(checks: Sequence[CheckResult]) -> CategoryReport:
    return CategoryReport(
        issues=tuple(collect_issues(checks)),
        score=score_checks(checks),
        checks=tuple(checks),
    )


def build_performance(
    metrics: Sequence[PerformanceMetric],
    details: Optional[dict] = None,
) -> PerformanceReport:
    poor = [metric.description for metric in metrics if metric.status == METRIC_POOR]
    return PerformanceReport(
        issues=tuple(poor),
        score=score_metrics(metrics),
        checks=tuple(metrics),
        metrics={metric.key: metric.value for metric in metrics},
        details=dict(details or {}),
    )


def generate_recommendations(
    security: Sequence[CheckResult],
    performance: Sequence[PerformanceMetric],
    seo: Sequence[CheckResult],
    accessibility: Sequence[CheckResult],
) -> List[str]:
    """Failing-check recommendations in category order, then poor-metric advice.

    Repeated strings are kept.
    """
    recommendations: List[str] = []
    for check in [*security, *seo, *accessibility]:
        if check.failed and check.recommendation:
            recommendations.append(check.recommendation)
    for metric in performance:
        if metric.status == METRIC_POOR and metric.name in POOR_METRIC_RECOMMENDATIONS:
            recommendations.append(POOR_METRIC_RECOMMENDATIONS[metric.name])
    return recommendations


def build_scan_result(
    url: str,
    security: Sequence[CheckResult],
    performance: Sequence[PerformanceMetric],
    seo: Sequence[CheckResult],
    accessibility: Sequence[CheckResult],
    *,
    performance_details: Optional[dict] = None,
    date: Optional[str] = None,
) -> ScanResult:
    return ScanResult(
        url=url,
        date=date or datetime.now(timezone.utc).isoformat(),
        security=build_category(security),
        performance=build_performance(performance, performance_details),
        seo=build_category(seo),
        accessibility=build_category(accessibility),
        recommendations=tuple(generate_recommendations(security, performance, seo, accessibility)),
    )
