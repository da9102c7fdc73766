from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Set

from ..context import ScanContext
from ..models import CATEGORY_ACCESSIBILITY, CATEGORY_SECURITY, CATEGORY_SEO, CheckResult

logger = logging.getLogger("sitesleuth.checks")

CheckGroup = Callable[[ScanContext], List[CheckResult]]


@dataclass
class RegisteredGroup:
    name: str
    func: CheckGroup
    source: str = "core"


class CheckRegistry:
    """Ordered check groups per category.

    Groups run in registration order and their results are concatenated, so
    the order of checks in a report is the registration order.
    """

    def __init__(self) -> None:
        self._categories: Dict[str, List[RegisteredGroup]] = {
            CATEGORY_SECURITY: [],
            CATEGORY_SEO: [],
            CATEGORY_ACCESSIBILITY: [],
        }
        self._lock = threading.RLock()

    def register(self, category: str, name: str, func: CheckGroup, *, source: str = "core") -> None:
        if category not in self._categories:
            raise ValueError(f"Unknown check category: {category}")
        entry = RegisteredGroup(name=name.lower(), func=func, source=source)
        with self._lock:
            if any(existing.name == entry.name for existing in self._categories[category]):
                raise ValueError(f"Check group already registered: {category}/{name}")
            self._categories[category].append(entry)

    def iter_checks(self, category: str, *, disabled: Optional[Set[str]] = None) -> Iterable[RegisteredGroup]:
        disabled_lookup = {name.lower() for name in (disabled or set())}
        with self._lock:
            entries = list(self._categories.get(category, []))
        for entry in entries:
            if entry.name in disabled_lookup:
                continue
            yield entry

    def run(self, category: str, context: ScanContext) -> List[CheckResult]:
        results: List[CheckResult] = []
        for entry in self.iter_checks(category, disabled=set(context.settings.disabled_checks)):
            group_results = entry.func(context)
            logger.debug("Group %s/%s produced %d checks", category, entry.name, len(group_results))
            results.extend(group_results)
        return results

    def describe(self, *, disabled: Optional[Set[str]] = None) -> Dict[str, List[Dict[str, Any]]]:
        disabled_lookup = {name.lower() for name in (disabled or set())}
        with self._lock:
            snapshot = {key: list(value) for key, value in self._categories.items()}
        return {
            category: [
                {
                    "name": entry.name,
                    "source": entry.source,
                    "enabled": entry.name not in disabled_lookup,
                }
                for entry in entries
            ]
            for category, entries in snapshot.items()
        }
