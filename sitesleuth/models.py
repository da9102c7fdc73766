from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from typing import Any, Dict, Optional, Tuple, Union
from urllib.parse import urlparse

STATUS_PASS = "pass"
STATUS_WARNING = "warning"
STATUS_FAIL = "fail"
CHECK_STATUSES = (STATUS_PASS, STATUS_WARNING, STATUS_FAIL)

METRIC_GOOD = "good"
METRIC_NEEDS_IMPROVEMENT = "needs-improvement"
METRIC_POOR = "poor"
METRIC_STATUSES = (METRIC_GOOD, METRIC_NEEDS_IMPROVEMENT, METRIC_POOR)

CATEGORY_SECURITY = "security"
CATEGORY_PERFORMANCE = "performance"
CATEGORY_SEO = "seo"
CATEGORY_ACCESSIBILITY = "accessibility"
CATEGORIES = (CATEGORY_SECURITY, CATEGORY_PERFORMANCE, CATEGORY_SEO, CATEGORY_ACCESSIBILITY)


def origin_of(url: str) -> str:
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}"


@dataclass(frozen=True)
class ScanTarget:
    raw_input: str
    effective_url: str
    base_origin: str

    @classmethod
    def for_url(cls, raw_input: str, url: str) -> "ScanTarget":
        return cls(raw_input=raw_input, effective_url=url, base_origin=origin_of(url))

    @property
    def scheme(self) -> str:
        return urlparse(self.effective_url).scheme

    @property
    def hostname(self) -> str:
        return urlparse(self.effective_url).hostname or ""

    @property
    def is_https(self) -> bool:
        return self.scheme == "https"

    def with_alternate_scheme(self) -> "ScanTarget":
        if self.effective_url.startswith("https://"):
            url = "http://" + self.effective_url[len("https://"):]
        else:
            url = "https://" + self.effective_url[len("http://"):]
        return replace(self, effective_url=url, base_origin=origin_of(url))


@dataclass(frozen=True)
class CheckResult:
    """One named security, SEO or accessibility finding.

    A passing result never carries a recommendation; one passed in is dropped.
    """

    name: str
    status: str
    description: str
    recommendation: Optional[str] = None

    def __post_init__(self) -> None:
        if self.status not in CHECK_STATUSES:
            raise ValueError(f"Unknown check status: {self.status}")
        if self.status == STATUS_PASS or not self.recommendation:
            object.__setattr__(self, "recommendation", None)

    @property
    def failed(self) -> bool:
        return self.status == STATUS_FAIL

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        return {k: v for k, v in payload.items() if v is not None}


@dataclass(frozen=True)
class PerformanceMetric:
    name: str
    value: float
    unit: str
    status: str

    def __post_init__(self) -> None:
        if self.status not in METRIC_STATUSES:
            raise ValueError(f"Unknown metric status: {self.status}")

    @property
    def key(self) -> str:
        return self.name.lower().replace(" ", "_")

    @property
    def description(self) -> str:
        return f"{self.name}: {self.value:g} {self.unit} ({self.status})"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


Check = Union[CheckResult, PerformanceMetric]


@dataclass(frozen=True)
class CategoryReport:
    issues: Tuple[str, ...]
    score: int
    checks: Tuple[Check, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "issues": list(self.issues),
            "score": self.score,
            "checks": [check.to_dict() for check in self.checks],
        }


@dataclass(frozen=True)
class PerformanceReport(CategoryReport):
    metrics: Dict[str, float] = field(default_factory=dict)
    details: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["metrics"] = dict(self.metrics)
        payload["details"] = dict(self.details)
        return payload


@dataclass(frozen=True)
class ScanResult:
    url: str
    date: str
    security: CategoryReport
    performance: PerformanceReport
    seo: CategoryReport
    accessibility: CategoryReport
    recommendations: Tuple[str, ...]

    def category(self, name: str) -> CategoryReport:
        if name not in CATEGORIES:
            raise KeyError(name)
        return getattr(self, name)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "date": self.date,
            CATEGORY_SECURITY: self.security.to_dict(),
            CATEGORY_PERFORMANCE: self.performance.to_dict(),
            CATEGORY_SEO: self.seo.to_dict(),
            CATEGORY_ACCESSIBILITY: self.accessibility.to_dict(),
            "recommendations": list(self.recommendations),
        }
