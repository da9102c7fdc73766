from __future__ import annotations

from ..context import ScanContext
from ..models import CATEGORY_ACCESSIBILITY, CATEGORY_SECURITY, CATEGORY_SEO
from .accessibility import ACCESSIBILITY_GROUPS
from .registry import CheckGroup, CheckRegistry, RegisteredGroup
from .security import SECURITY_GROUPS
from .seo import SEO_GROUPS

CHECK_REGISTRY = CheckRegistry()

for _category, _groups in (
    (CATEGORY_SECURITY, SECURITY_GROUPS),
    (CATEGORY_SEO, SEO_GROUPS),
    (CATEGORY_ACCESSIBILITY, ACCESSIBILITY_GROUPS),
):
    for _name, _func in _groups:
        CHECK_REGISTRY.register(_category, _name, _func)


__all__ = [
    "CHECK_REGISTRY",
    "CheckGroup",
    "CheckRegistry",
    "RegisteredGroup",
    "ScanContext",
]
