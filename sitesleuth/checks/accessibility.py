"""Accessibility checks. Document inspection only, no network calls."""

from __future__ import annotations

from typing import List

from ..context import ScanContext
from ..models import STATUS_FAIL, STATUS_PASS, STATUS_WARNING, CheckResult

ARIA_SELECTOR = "[aria-label], [aria-labelledby], [aria-describedby]"
INTERACTIVE_TAGS = ("button", "input", "select", "textarea", "a")
LANDMARK_TAGS = ("main", "nav", "header", "footer", "section", "article", "aside")
FOCUSABLE_SELECTOR = "a, button, input, textarea, select, [tabindex]"


def _check_accessibility(context: ScanContext) -> List[CheckResult]:
    document = context.document
    checks: List[CheckResult] = []

    images = document.elements("img")
    missing_alt = sum(1 for image in images if not (image.attr("alt") or "").strip())
    checks.append(
        CheckResult(
            "Alt Text",
            STATUS_PASS if missing_alt == 0 else STATUS_FAIL,
            f"{missing_alt} of {len(images)} images missing alt text",
            "Add descriptive alt text to all images",
        )
    )

    aria_count = len(document.select(ARIA_SELECTOR))
    interactive = document.count(*INTERACTIVE_TAGS)
    # Nothing interactive and nothing labelled is still a pass.
    aria_status = STATUS_WARNING if aria_count == 0 and interactive > 0 else STATUS_PASS
    checks.append(
        CheckResult(
            "ARIA Labels",
            aria_status,
            f"{aria_count} elements with ARIA labels found ({interactive} interactive elements)",
            "Use ARIA labels for interactive elements without visible labels",
        )
    )

    landmarks = document.count(*LANDMARK_TAGS)
    checks.append(
        CheckResult(
            "Semantic HTML",
            STATUS_PASS if landmarks > 0 else STATUS_WARNING,
            f"{landmarks} semantic HTML elements found",
            "Use semantic HTML elements (main, nav, header, footer, etc.)",
        )
    )

    labelled_ids = {
        (label.attr("for") or "").strip() for label in document.select("label[for]")
    }
    fields = [
        field
        for field in document.elements("input", "textarea", "select")
        if not (field.name == "input" and (field.attr("type") or "").strip().lower() == "hidden")
    ]
    if fields:
        labelled = 0
        for field in fields:
            field_id = (field.attr("id") or "").strip()
            if field_id and field_id in labelled_ids:
                labelled += 1
            elif (field.attr("aria-label") or "").strip() or (field.attr("aria-labelledby") or "").strip():
                labelled += 1
        checks.append(
            CheckResult(
                "Form Labels",
                STATUS_PASS if labelled == len(fields) else STATUS_FAIL,
                f"{labelled} of {len(fields)} form inputs have proper labels",
                "Associate all form inputs with descriptive labels",
            )
        )

    focusable = len(document.select(FOCUSABLE_SELECTOR))
    removed = len(document.select('[tabindex="-1"]'))
    checks.append(
        CheckResult(
            "Keyboard Navigation",
            STATUS_PASS if removed == 0 else STATUS_WARNING,
            f"{focusable} focusable elements found, {removed} removed from tab order",
            "Ensure all interactive elements are keyboard accessible",
        )
    )
    return checks


ACCESSIBILITY_GROUPS = (("accessibility", _check_accessibility),)
