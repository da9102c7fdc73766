from __future__ import annotations

import io
import threading
from typing import Callable, Dict, Iterable, List, Optional, Tuple, Union
from urllib.parse import urlsplit, urlunsplit

import pytest
import requests
from requests.adapters import BaseAdapter, HTTPAdapter
from urllib3._collections import HTTPHeaderDict
from urllib3.response import HTTPResponse

from sitesleuth.config import ScanSettings
from sitesleuth.context import ScanContext
from sitesleuth.document import Document
from sitesleuth.fetcher import HeaderMap, HttpClient, RawResponse
from sitesleuth.models import ScanTarget

Headers = Union[Dict[str, str], Iterable[Tuple[str, str]]]
Body = Union[str, bytes, Callable[[requests.PreparedRequest], str]]


def _route_key(url: str) -> str:
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc.lower(), parts.path or "/", parts.query, ""))


def _without_query(url: str) -> str:
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc.lower(), parts.path or "/", "", ""))


class FakeAdapter(BaseAdapter):
    """Transport adapter answering from canned routes; unknown URLs get a 404."""

    def __init__(self) -> None:
        super().__init__()
        self._routes: Dict[Tuple[Optional[str], str], tuple] = {}
        self._lock = threading.Lock()
        self.requests: List[requests.PreparedRequest] = []

    def add(
        self,
        url: str,
        *,
        status: int = 200,
        body: Body = "",
        headers: Optional[Headers] = None,
        method: Optional[str] = None,
        reason: str = "OK",
    ) -> None:
        self._routes[(method.upper() if method else None, _route_key(url))] = ("response", status, body, headers, reason)

    def fail(self, url: str, exc: Exception) -> None:
        self._routes[(None, _route_key(url))] = ("error", exc)

    @property
    def urls(self) -> List[str]:
        with self._lock:
            return [req.url for req in self.requests]

    def _lookup(self, request: requests.PreparedRequest) -> Optional[tuple]:
        method = (request.method or "GET").upper()
        for key in (_route_key(request.url), _without_query(request.url)):
            for candidate in ((method, key), (None, key)):
                if candidate in self._routes:
                    return self._routes[candidate]
        return None

    def send(self, request, stream=False, timeout=None, verify=True, cert=None, proxies=None):
        with self._lock:
            self.requests.append(request)
        route = self._lookup(request)
        if route is None:
            route = ("response", 404, "Not Found", None, "Not Found")
        if route[0] == "error":
            raise route[1]
        _, status, body, headers, reason = route
        if callable(body):
            body = body(request)
        payload = body.encode("utf-8") if isinstance(body, str) else body
        header_dict = HTTPHeaderDict()
        items = headers.items() if isinstance(headers, dict) else (headers or [])
        for name, value in items:
            header_dict.add(name, value)
        if "content-type" not in header_dict:
            header_dict.add("Content-Type", "text/html; charset=utf-8")
        raw = HTTPResponse(
            body=io.BytesIO(payload),
            headers=header_dict,
            status=status,
            reason=reason,
            preload_content=False,
            decode_content=False,
            enforce_content_length=False,
        )
        return HTTPAdapter().build_response(request, raw)

    def close(self) -> None:
        pass


@pytest.fixture
def settings() -> ScanSettings:
    return ScanSettings(probe_delay=0, probe_workers=4)


@pytest.fixture
def adapter() -> FakeAdapter:
    return FakeAdapter()


@pytest.fixture
def client(settings, adapter):
    http = HttpClient(settings, adapter=adapter)
    yield http
    http.close()


@pytest.fixture
def make_context(settings, client):
    """Build a ScanContext for a canned page without going through the main fetch."""

    def factory(
        html: str = "<html><head></head><body></body></html>",
        *,
        headers: Optional[Headers] = None,
        url: str = "https://example.com",
        status: int = 200,
        scan_settings: Optional[ScanSettings] = None,
        load_time_ms: float = 120.0,
    ) -> ScanContext:
        items = list(headers.items()) if isinstance(headers, dict) else list(headers or [])
        response = RawResponse(
            url=url,
            status_code=status,
            reason="OK",
            headers=HeaderMap(items),
            content=html.encode("utf-8"),
            text=html,
            elapsed_ms=load_time_ms,
        )
        return ScanContext(
            target=ScanTarget.for_url(url, url),
            response=response,
            document=Document.parse(html),
            client=client,
            settings=scan_settings or settings,
            load_time_ms=load_time_ms,
        )

    return factory


SECURE_HEADERS = {
    "Strict-Transport-Security": "max-age=31536000",
    "Content-Security-Policy": "default-src 'self'",
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "no-referrer",
    "Permissions-Policy": "geolocation=()",
}


@pytest.fixture
def secure_headers() -> Dict[str, str]:
    return dict(SECURE_HEADERS)
