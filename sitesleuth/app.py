from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

from .checks import CHECK_REGISTRY
from .config import ScanSettings
from .errors import InvalidInputError, ScanError
from .models import CATEGORIES
from .reporting import render_json, render_pdf
from .scanner import perform_scan
from .storage import InMemoryReportStore

logger = logging.getLogger("sitesleuth.app")

EXPORT_FORMATS = {"pdf": "application/pdf", "json": "application/json"}
TEMPORARY_REPORT_PREFIX = "temp-"

HARDENING_HEADERS = {
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "origin-when-cross-origin",
    "X-XSS-Protection": "1; mode=block",
    "X-DNS-Prefetch-Control": "off",
    "X-Download-Options": "noopen",
    "X-Permitted-Cross-Domain-Policies": "none",
    "Content-Security-Policy": (
        "default-src 'self'; img-src 'self' data:; style-src 'self' 'unsafe-inline'; "
        "object-src 'none'; frame-ancestors 'none'; base-uri 'self'; form-action 'self'"
    ),
}
HSTS_VALUE = "max-age=31536000; includeSubDomains; preload"


class ScanRequest(BaseModel):
    url: str = Field(..., description="Page to audit. A bare host name is tried over https first.")


class ExportRequest(BaseModel):
    reportId: Optional[str] = None
    format: str = "pdf"
    scanResult: Optional[Dict[str, Any]] = None


report_store = InMemoryReportStore()

app = FastAPI(
    title="SiteSleuth Website Audit API",
    description="Security, performance, SEO and accessibility audit of a single page.",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response = await call_next(request)
    for name, value in HARDENING_HEADERS.items():
        response.headers[name] = value
    forwarded = request.headers.get("x-forwarded-proto", "")
    if request.url.scheme == "https" or forwarded.lower() == "https":
        response.headers["Strict-Transport-Security"] = HSTS_VALUE
    return response


def _error(status_code: int, error: str, message: Optional[str] = None) -> JSONResponse:
    body: Dict[str, Any] = {"error": error}
    if message:
        body["message"] = message
    return JSONResponse(status_code=status_code, content=body)


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError):
    return _error(400, "Invalid request body", "; ".join(err.get("msg", "") for err in exc.errors()))


@app.exception_handler(InvalidInputError)
async def handle_invalid_input(request: Request, exc: InvalidInputError):
    return _error(400, "Invalid URL format", str(exc))


@app.exception_handler(ScanError)
async def handle_scan_error(request: Request, exc: ScanError):
    return _error(500, "Failed to scan website", str(exc))


@app.get("/healthz", tags=["meta"])
def healthcheck():
    disabled = set(ScanSettings.from_env().disabled_checks)
    return {"status": "ok", "checks": CHECK_REGISTRY.describe(disabled=disabled)}


@app.post("/api/scan", tags=["scan"])
def scan(payload: ScanRequest):
    if not payload.url.strip():
        return _error(400, "URL is required and must be a string")
    result = perform_scan(payload.url).to_dict()
    report_id = report_store.put(result)
    logger.info("Stored report %s for %s", report_id, result["url"])
    return {"success": True, "data": result, "reportId": report_id}


@app.get("/api/scan", tags=["scan"])
def get_reports(report_id: Optional[str] = Query(default=None, alias="id")):
    if report_id:
        report = report_store.get(report_id)
        if report is None:
            return _error(404, "Report not found")
        return {"success": True, "data": report}
    return {"success": True, "data": report_store.all()}


def _has_score(section: Any) -> bool:
    score = isinstance(section, dict) and section.get("score")
    return isinstance(score, int) and not isinstance(score, bool)


def _looks_like_report(report: Dict[str, Any]) -> bool:
    return "url" in report and all(_has_score(report.get(name)) for name in CATEGORIES)


@app.post("/api/export", tags=["export"])
def export(payload: ExportRequest):
    report: Optional[Dict[str, Any]] = None
    report_id = payload.reportId
    if report_id and not report_id.startswith(TEMPORARY_REPORT_PREFIX):
        report = report_store.get(report_id)
        if report is None:
            return _error(404, "Report not found")
    elif payload.scanResult is not None:
        report = payload.scanResult
        if report_id and _looks_like_report(report):
            report_store.put(report)
    else:
        return _error(400, "Either reportId or scanResult is required")

    if not _looks_like_report(report):
        return _error(400, "No valid report found")
    if payload.format not in EXPORT_FORMATS:
        return _error(400, "Invalid format. Supported formats: pdf, json")

    day = datetime.now(timezone.utc).date().isoformat()
    filename = f"sitesleuth-report-{day}.{payload.format}"
    if payload.format == "pdf":
        content: Any = render_pdf(report)
    else:
        content = render_json(report)
    return Response(
        content=content,
        media_type=EXPORT_FORMATS[payload.format],
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "Cache-Control": "no-cache",
        },
    )
