from __future__ import annotations

import secrets
import threading
import time
from collections import OrderedDict
from typing import Any, Dict, List, Optional, Protocol

from .config import max_reports_from_env

Report = Dict[str, Any]


class ReportStore(Protocol):
    def put(self, report: Report) -> str: ...

    def get(self, report_id: str) -> Optional[Report]: ...

    def all(self) -> List[Report]: ...

    def delete(self, report_id: str) -> bool: ...

    def clear(self) -> None: ...


def new_report_id() -> str:
    return f"report-{int(time.time() * 1000)}-{secrets.token_hex(5)}"


class InMemoryReportStore:
    """Process-local report store. Oldest reports are evicted past ``max_reports``."""

    def __init__(self, max_reports: Optional[int] = None) -> None:
        self.max_reports = max_reports if max_reports is not None else max_reports_from_env()
        self._reports: "OrderedDict[str, Report]" = OrderedDict()
        self._lock = threading.Lock()

    def put(self, report: Report) -> str:
        report_id = new_report_id()
        with self._lock:
            while report_id in self._reports:
                report_id = new_report_id()
            self._reports[report_id] = report
            while len(self._reports) > self.max_reports:
                self._reports.popitem(last=False)
        return report_id

    def get(self, report_id: str) -> Optional[Report]:
        with self._lock:
            return self._reports.get(report_id)

    def all(self) -> List[Report]:
        with self._lock:
            return list(self._reports.values())

    def delete(self, report_id: str) -> bool:
        with self._lock:
            return self._reports.pop(report_id, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._reports.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._reports)
