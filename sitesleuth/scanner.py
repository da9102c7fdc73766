from __future__ import annotations

import argparse
import logging
import sys
import time
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional

from .checks import CHECK_REGISTRY
from .checks import performance as performance_checks
from .config import ScanSettings
from .context import ScanContext
from .document import Document
from .errors import ScanError
from .fetcher import HttpClient, fetch_with_fallback
from .models import CATEGORY_ACCESSIBILITY, CATEGORY_SECURITY, CATEGORY_SEO, ScanResult
from .reporting import render_json, render_pdf
from .resolver import resolve
from .scoring import build_scan_result

logger = logging.getLogger("sitesleuth.scanner")


def perform_scan(
    raw_input: str,
    *,
    settings: Optional[ScanSettings] = None,
    client: Optional[HttpClient] = None,
) -> ScanResult:
    """Audit one page and return the complete report.

    Raises :class:`~sitesleuth.errors.InvalidInputError` for unusable input and
    a :class:`~sitesleuth.errors.FetchError` subclass when the page cannot be
    fetched under either scheme. Nothing else escapes.
    """
    settings = settings or ScanSettings.from_env()
    target = resolve(raw_input)
    owns_client = client is None
    http = client or HttpClient(settings)
    try:
        started = time.perf_counter()
        response, target = fetch_with_fallback(target, http)
        document = Document.parse(response.text)
        load_time_ms = (time.perf_counter() - started) * 1000.0
        logger.info(
            "Fetched %s (HTTP %s, %d bytes) in %.0f ms",
            target.effective_url,
            response.status_code,
            len(response.content),
            load_time_ms,
        )

        context = ScanContext(
            target=target,
            response=response,
            document=document,
            client=http,
            settings=settings,
            load_time_ms=load_time_ms,
        )
        with ThreadPoolExecutor(max_workers=4) as executor:
            security_future = executor.submit(CHECK_REGISTRY.run, CATEGORY_SECURITY, context)
            performance_future = executor.submit(performance_checks.measure, context)
            seo_future = executor.submit(CHECK_REGISTRY.run, CATEGORY_SEO, context)
            accessibility_future = executor.submit(CHECK_REGISTRY.run, CATEGORY_ACCESSIBILITY, context)
            security = security_future.result()
            metrics = performance_future.result()
            seo = seo_future.result()
            accessibility = accessibility_future.result()
    finally:
        if owns_client:
            http.close()

    result = build_scan_result(
        target.effective_url,
        security,
        metrics,
        seo,
        accessibility,
        performance_details=performance_checks.details(metrics, context),
    )
    logger.info(
        "Scan of %s finished: security=%d performance=%d seo=%d accessibility=%d",
        result.url,
        result.security.score,
        result.performance.score,
        result.seo.score,
        result.accessibility.score,
    )
    return result


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="SiteSleuth website audit scanner")
    parser.add_argument("--url", "-u", required=True, help="Target URL or bare host name.")
    parser.add_argument(
        "--output",
        "-o",
        default=None,
        help="File to write the report to (default: report.json or report.pdf).",
    )
    parser.add_argument(
        "--format",
        choices=("json", "pdf"),
        default="json",
        help="Report format.",
    )
    parser.add_argument(
        "--no-active-probing",
        action="store_true",
        help="Do not submit injection payloads to forms or URL parameters.",
    )
    parser.add_argument("--verbose", "-v", action="count", default=0, help="More logging (-vv for debug).")
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    settings = ScanSettings.from_env(allow_active_probing=False if args.no_active_probing else None)
    try:
        result = perform_scan(args.url, settings=settings)
    except ScanError as exc:
        print(f"Scan failed: {exc}", file=sys.stderr)
        return 1

    output = args.output or f"report.{args.format}"
    if args.format == "pdf":
        with open(output, "wb") as handle:
            handle.write(render_pdf(result.to_dict()))
    else:
        with open(output, "w", encoding="utf-8") as handle:
            handle.write(render_json(result.to_dict()))
    print(f"Report saved to {output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
