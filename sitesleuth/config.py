from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import FrozenSet, Optional

USER_AGENT = "SiteSleuth-Scanner/1.0 (+website audit)"

DEFAULT_FETCH_TIMEOUT = 10
DEFAULT_PROBE_TIMEOUT = 3
DEFAULT_ACTIVE_TIMEOUT = 5
DEFAULT_MAX_REDIRECTS = 5
DEFAULT_PROBE_DELAY_MS = 200
DEFAULT_PROBE_WORKERS = 8
DEFAULT_MAX_REPORTS = 100

_FALSE_VALUES = {"0", "false", "no", "off"}


def _read_limit_from_env(var_name: str, default: int, minimum: int) -> int:
    value = os.getenv(var_name)
    if value is None:
        return default
    try:
        parsed = int(value)
    except ValueError:
        return default
    return max(minimum, parsed)


def _read_flag_from_env(var_name: str, default: bool) -> bool:
    value = os.getenv(var_name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() not in _FALSE_VALUES


def _read_names_from_env(var_name: str) -> FrozenSet[str]:
    raw = os.getenv(var_name)
    if not raw:
        return frozenset()
    return frozenset(item.strip().lower() for item in raw.split(",") if item.strip())


@dataclass(frozen=True)
class ScanSettings:
    """Tunables for one scan. Timeouts are in seconds."""

    user_agent: str = USER_AGENT
    fetch_timeout: float = DEFAULT_FETCH_TIMEOUT
    probe_timeout: float = DEFAULT_PROBE_TIMEOUT
    active_timeout: float = DEFAULT_ACTIVE_TIMEOUT
    max_redirects: int = DEFAULT_MAX_REDIRECTS
    probe_delay: float = DEFAULT_PROBE_DELAY_MS / 1000.0
    probe_workers: int = DEFAULT_PROBE_WORKERS
    allow_active_probing: bool = True
    disabled_checks: FrozenSet[str] = field(default_factory=frozenset)

    @classmethod
    def from_env(cls, *, allow_active_probing: Optional[bool] = None) -> "ScanSettings":
        active = _read_flag_from_env("SITESLEUTH_ACTIVE_PROBING", True)
        if allow_active_probing is not None:
            active = allow_active_probing
        user_agent = (os.getenv("SITESLEUTH_USER_AGENT") or "").strip() or USER_AGENT
        return cls(
            user_agent=user_agent,
            fetch_timeout=_read_limit_from_env("SITESLEUTH_FETCH_TIMEOUT", DEFAULT_FETCH_TIMEOUT, 1),
            probe_timeout=_read_limit_from_env("SITESLEUTH_PROBE_TIMEOUT", DEFAULT_PROBE_TIMEOUT, 1),
            active_timeout=_read_limit_from_env("SITESLEUTH_ACTIVE_TIMEOUT", DEFAULT_ACTIVE_TIMEOUT, 1),
            max_redirects=_read_limit_from_env("SITESLEUTH_MAX_REDIRECTS", DEFAULT_MAX_REDIRECTS, 0),
            probe_delay=_read_limit_from_env("SITESLEUTH_PROBE_DELAY_MS", DEFAULT_PROBE_DELAY_MS, 0) / 1000.0,
            probe_workers=_read_limit_from_env("SITESLEUTH_PROBE_WORKERS", DEFAULT_PROBE_WORKERS, 1),
            allow_active_probing=active,
            disabled_checks=_read_names_from_env("SITESLEUTH_DISABLE_CHECKS"),
        )


def max_reports_from_env() -> int:
    return _read_limit_from_env("SITESLEUTH_MAX_REPORTS", DEFAULT_MAX_REPORTS, 1)
