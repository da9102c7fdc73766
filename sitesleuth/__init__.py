"""SiteSleuth: single-page website audit (security, performance, SEO, accessibility)."""

import logging

from .config import ScanSettings
from .errors import (
    ConnectionRefused,
    FetchError,
    HostNotFound,
    InvalidInputError,
    RemoteHttpError,
    ScanError,
    Timeout,
)
from .models import CategoryReport, CheckResult, PerformanceMetric, PerformanceReport, ScanResult, ScanTarget
from .resolver import resolve
from .scanner import perform_scan

logging.getLogger("sitesleuth").addHandler(logging.NullHandler())

__version__ = "1.0.0"

__all__ = [
    "CategoryReport",
    "CheckResult",
    "ConnectionRefused",
    "FetchError",
    "HostNotFound",
    "InvalidInputError",
    "PerformanceMetric",
    "PerformanceReport",
    "RemoteHttpError",
    "ScanError",
    "ScanResult",
    "ScanSettings",
    "ScanTarget",
    "Timeout",
    "perform_scan",
    "resolve",
]
