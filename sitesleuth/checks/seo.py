from __future__ import annotations

from typing import List

from ..context import ScanContext
from ..models import STATUS_FAIL, STATUS_PASS, STATUS_WARNING, CheckResult

TITLE_MIN = 30
TITLE_MAX = 60
TITLE_TOO_SHORT = 10
DESCRIPTION_MIN = 120
DESCRIPTION_MAX = 160
OPEN_GRAPH_PROPERTIES = ("og:title", "og:description", "og:image")


def _shorten(text: str, limit: int) -> str:
    return text[:limit] + ("..." if len(text) > limit else "")


def _title_check(context: ScanContext) -> CheckResult:
    title = context.document.title_text() or ""
    length = len(title)
    if not title:
        return CheckResult("Title Tag", STATUS_FAIL, "Missing title tag", "Add a descriptive title tag (30-60 characters)")
    description = f'Title tag present: "{_shorten(title, 50)}" ({length} chars)'
    if TITLE_MIN <= length <= TITLE_MAX:
        return CheckResult("Title Tag", STATUS_PASS, description)
    if length > TITLE_MAX:
        return CheckResult("Title Tag", STATUS_WARNING, description, "Title tag is too long (maximum 60 characters)")
    status = STATUS_FAIL if length < TITLE_TOO_SHORT else STATUS_WARNING
    return CheckResult("Title Tag", status, description, "Title tag is too short (minimum 30 characters)")


def _meta_description_check(context: ScanContext) -> CheckResult:
    content = (context.document.meta_content(name="description") or "").strip()
    length = len(content)
    if not content:
        return CheckResult(
            "Meta Description",
            STATUS_FAIL,
            "Missing meta description",
            "Add a meta description (120-160 characters)",
        )
    description = f"Meta description present ({length} chars)"
    if DESCRIPTION_MIN <= length <= DESCRIPTION_MAX:
        return CheckResult("Meta Description", STATUS_PASS, description)
    if length < DESCRIPTION_MIN:
        recommendation = "Meta description is too short (minimum 120 characters)"
    else:
        recommendation = "Meta description is too long (maximum 160 characters)"
    return CheckResult("Meta Description", STATUS_WARNING, description, recommendation)


def _heading_check(context: ScanContext) -> CheckResult:
    headings = context.document.elements("h1")
    if not headings:
        return CheckResult("Heading Structure", STATUS_FAIL, "No H1 tag found", "Add exactly one H1 tag per page")
    if len(headings) == 1:
        return CheckResult("Heading Structure", STATUS_PASS, f'H1 tag found: "{_shorten(headings[0].text, 40)}"')
    return CheckResult(
        "Heading Structure",
        STATUS_WARNING,
        f"Multiple H1 tags found ({len(headings)})",
        "Use only one H1 tag per page for better SEO",
    )


def _check_content(context: ScanContext) -> List[CheckResult]:
    checks = [_title_check(context), _meta_description_check(context), _heading_check(context)]

    if context.document.meta_content(name="keywords"):
        checks.append(
            CheckResult(
                "Meta Keywords",
                STATUS_WARNING,
                "Meta keywords tag found (deprecated)",
                "Meta keywords are no longer used by search engines and can be removed",
            )
        )

    present = [prop for prop in OPEN_GRAPH_PROPERTIES if context.document.meta_content(prop=prop)]
    recommendation = "Add Open Graph tags (og:title, og:description, og:image) for better social media sharing"
    if not present:
        checks.append(CheckResult("Open Graph Tags", STATUS_FAIL, "No Open Graph tags found", recommendation))
    else:
        status = STATUS_PASS if len(present) == len(OPEN_GRAPH_PROPERTIES) else STATUS_WARNING
        checks.append(
            CheckResult(
                "Open Graph Tags",
                status,
                f"{len(present)}/{len(OPEN_GRAPH_PROPERTIES)} essential Open Graph tags present",
                recommendation,
            )
        )

    canonical = context.document.first('link[rel="canonical"]')
    href = canonical.attr("href") if canonical is not None else None
    if href:
        checks.append(CheckResult("Canonical URL", STATUS_PASS, f"Canonical URL set to: {href}"))
    else:
        checks.append(
            CheckResult(
                "Canonical URL",
                STATUS_WARNING,
                "No canonical URL specified",
                "Add a canonical URL to avoid duplicate content issues",
            )
        )

    images = context.document.elements("img")
    if images:
        with_alt = sum(1 for image in images if (image.attr("alt") or "").strip())
        checks.append(
            CheckResult(
                "Image Alt Tags",
                STATUS_PASS if with_alt == len(images) else STATUS_WARNING,
                f"{with_alt} of {len(images)} images have alt text",
                "Add alt text to all images for better accessibility and SEO",
            )
        )
    return checks


def _check_crawlability(context: ScanContext) -> List[CheckResult]:
    robots, sitemap = context.client.probe_many(
        [context.origin_url("/robots.txt"), context.origin_url("/sitemap.xml")]
    )
    checks: List[CheckResult] = []
    if robots.reachable():
        checks.append(CheckResult("Robots.txt", STATUS_PASS, "robots.txt file found and accessible"))
    else:
        checks.append(
            CheckResult(
                "Robots.txt",
                STATUS_WARNING,
                "robots.txt file not found or not accessible",
                "Create a robots.txt file to guide search engine crawling",
            )
        )
    if sitemap.reachable():
        checks.append(CheckResult("Sitemap", STATUS_PASS, "XML sitemap found"))
    else:
        checks.append(
            CheckResult(
                "Sitemap",
                STATUS_WARNING,
                "XML sitemap not found",
                "Create an XML sitemap to help search engines discover your pages",
            )
        )
    return checks


SEO_GROUPS = (
    ("content", _check_content),
    ("crawlability", _check_crawlability),
)
