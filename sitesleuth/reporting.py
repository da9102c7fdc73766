"""JSON and PDF renderings of a finished report.

Both renderers take the serialized form of a report (``ScanResult.to_dict()``),
so a report read back from the store renders the same as a fresh one.
"""

from __future__ import annotations

import json
from datetime import datetime
from io import BytesIO
from typing import Any, Dict, List

from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

from .models import CATEGORIES
from .scoring import round_half_up

CATEGORY_TITLES = {
    "security": "Security Analysis",
    "performance": "Performance Analysis",
    "seo": "SEO Analysis",
    "accessibility": "Accessibility Analysis",
}

MARGIN = 50
BODY_FONT = "Helvetica"
HEADING_FONT = "Helvetica-Bold"


def overall_score(report: Dict[str, Any]) -> int:
    scores = [int(report[name]["score"]) for name in CATEGORIES]
    return round_half_up(sum(scores) / len(scores))


def score_label(score: float) -> str:
    if score >= 90:
        return "Excellent"
    if score >= 70:
        return "Good"
    if score >= 50:
        return "Fair"
    return "Poor"


def render_json(report: Dict[str, Any]) -> str:
    return json.dumps(report, ensure_ascii=False, indent=2)


def _display_date(value: str) -> str:
    try:
        return datetime.fromisoformat(value).strftime("%Y-%m-%d %H:%M:%S %Z").strip()
    except (TypeError, ValueError):
        return str(value)


class _PdfWriter:
    def __init__(self, buffer: BytesIO) -> None:
        self.canvas = canvas.Canvas(buffer, pagesize=A4)
        self.width, self.height = A4
        self.y = self.height - MARGIN

    def _ensure_room(self, needed: float) -> None:
        if self.y - needed < MARGIN:
            self.canvas.showPage()
            self.y = self.height - MARGIN

    def line(self, text: str, *, size: int = 11, bold: bool = False, indent: float = 0, gap: float = 4) -> None:
        font = HEADING_FONT if bold else BODY_FONT
        available = self.width - 2 * MARGIN - indent
        for part in simpleSplit(text, font, size, available) or [""]:
            self._ensure_room(size + gap)
            self.canvas.setFont(font, size)
            self.canvas.drawString(MARGIN + indent, self.y - size, part)
            self.y -= size + gap

    def space(self, amount: float = 10) -> None:
        self.y -= amount

    def finish(self) -> None:
        self.canvas.showPage()
        self.canvas.save()


def _issue_lines(name: str, section: Dict[str, Any]) -> List[str]:
    issues = section.get("issues") or []
    if not issues:
        label = "SEO" if name == "seo" else name
        return [f"No {label} issues found!"]
    return [f"- {issue}" for issue in issues]


def render_pdf(report: Dict[str, Any]) -> bytes:
    buffer = BytesIO()
    pdf = _PdfWriter(buffer)
    pdf.canvas.setTitle("SiteSleuth - Website Audit Report")

    pdf.line("SiteSleuth - Website Audit Report", size=20, bold=True, gap=10)
    pdf.line(f"URL: {report.get('url', '')}")
    pdf.line(f"Date: {_display_date(report.get('date', ''))}")
    total = overall_score(report)
    pdf.line(f"Overall score: {total}/100 ({score_label(total)})", bold=True)
    pdf.space(14)

    for name in CATEGORIES:
        section = report[name]
        pdf.line(CATEGORY_TITLES[name], size=16, bold=True, gap=8)
        pdf.line(f"Score: {section['score']}/100 ({score_label(section['score'])})")
        if name == "performance":
            details = section.get("details") or {}
            if details.get("loadTime"):
                pdf.line(f"Load Time: {details['loadTime']}ms")
            if details.get("pageSize"):
                pdf.line(f"Page Size: {round_half_up(details['pageSize'] / 1024)}KB")
        else:
            issues = section.get("issues") or []
            if issues:
                pdf.line("Issues Found:")
            for text in _issue_lines(name, section):
                pdf.line(text, indent=20 if issues else 0)
        pdf.space(12)

    recommendations = report.get("recommendations") or []
    if recommendations:
        pdf.line("Recommendations", size=16, bold=True, gap=8)
        for index, recommendation in enumerate(recommendations, start=1):
            pdf.line(f"{index}. {recommendation}")

    pdf.finish()
    return buffer.getvalue()
