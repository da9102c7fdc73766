"""HTTP access for the scanner.

The main page fetch goes through :func:`fetch_with_fallback`, which retries once
under the alternate scheme and raises one of the :mod:`sitesleuth.errors`
network errors. Every other request is a *probe*: it never raises and reports
its outcome as a :class:`ProbeResult`.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple

import requests
from requests.adapters import BaseAdapter
from urllib3._collections import HTTPHeaderDict

from .config import ScanSettings
from .errors import ConnectionRefused, FetchError, HostNotFound, RemoteHttpError, Timeout
from .models import ScanTarget

logger = logging.getLogger("sitesleuth.fetcher")

HOST_NOT_FOUND_MARKERS = (
    "name or service not known",
    "nodename nor servname",
    "getaddrinfo failed",
    "failed to resolve",
    "no address associated",
    "temporary failure in name resolution",
    "name resolution",
)
CONNECTION_REFUSED_MARKERS = (
    "connection refused",
    "errno 111",
    "errno 61",
    "actively refused",
)


class HeaderMap(Mapping[str, str]):
    """Case-insensitive response headers that keep repeated values apart.

    A read-only view over urllib3's ``HTTPHeaderDict``: ``headers["set-cookie"]``
    joins repeated values with ``", "``; :meth:`get_all` returns them one by one.
    """

    def __init__(self, items: Iterable[Tuple[str, str]] = ()) -> None:
        self._headers = HTTPHeaderDict()
        for name, value in items:
            self._headers.add(name, value)

    @classmethod
    def from_response(cls, resp: requests.Response) -> "HeaderMap":
        raw_headers = getattr(resp.raw, "headers", None)
        if isinstance(raw_headers, HTTPHeaderDict):
            return cls(raw_headers.iteritems())
        return cls(resp.headers.items())

    def __getitem__(self, name: str) -> str:
        return self._headers[name]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name in self._headers

    def __iter__(self) -> Iterator[str]:
        return iter(self._headers)

    def __len__(self) -> int:
        return len(self._headers)

    def get_all(self, name: str) -> List[str]:
        return list(self._headers.getlist(name))

    def __repr__(self) -> str:
        return f"HeaderMap({dict(self.items())!r})"


@dataclass(frozen=True)
class RawResponse:
    url: str
    status_code: int
    reason: str
    headers: HeaderMap
    content: bytes
    text: str
    elapsed_ms: float = 0.0
    history: Tuple[int, ...] = ()

    @classmethod
    def from_requests(cls, resp: requests.Response, *, elapsed_ms: float = 0.0) -> "RawResponse":
        content = resp.content or b""
        return cls(
            url=resp.url,
            status_code=resp.status_code,
            reason=resp.reason or "",
            headers=HeaderMap.from_response(resp),
            content=content,
            text=resp.text or "",
            elapsed_ms=elapsed_ms,
            history=tuple(r.status_code for r in resp.history),
        )

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of an auxiliary request: a response, or the reason there is none."""

    url: str
    response: Optional[RawResponse] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.response is not None

    @property
    def status_code(self) -> Optional[int]:
        return self.response.status_code if self.response is not None else None

    def succeeded(self) -> bool:
        """True when the target answered with a 2xx status."""
        return self.response is not None and self.response.ok

    def reachable(self) -> bool:
        """True when the target answered below 400 (2xx, or 3xx not followed)."""
        return self.response is not None and self.response.status_code < 400


class HttpClient:
    """requests wrapper with one session per worker thread."""

    def __init__(self, settings: ScanSettings, *, adapter: Optional[BaseAdapter] = None) -> None:
        self.settings = settings
        self._adapter = adapter
        self._local = threading.local()
        self._sessions: List[requests.Session] = []
        self._lock = threading.Lock()

    def _session(self) -> requests.Session:
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            session.headers.update({"User-Agent": self.settings.user_agent, "Accept": "*/*"})
            session.max_redirects = self.settings.max_redirects
            if self._adapter is not None:
                session.mount("http://", self._adapter)
                session.mount("https://", self._adapter)
            self._local.session = session
            with self._lock:
                self._sessions.append(session)
        return session

    def fetch(
        self,
        url: str,
        *,
        method: str = "GET",
        timeout: Optional[float] = None,
        allow_redirects: bool = True,
        **kwargs: Any,
    ) -> RawResponse:
        """Send one request. Raises ``requests.RequestException`` on network failure."""
        started = time.perf_counter()
        resp = self._session().request(
            method,
            url,
            timeout=timeout if timeout is not None else self.settings.fetch_timeout,
            allow_redirects=allow_redirects,
            **kwargs,
        )
        elapsed_ms = (time.perf_counter() - started) * 1000.0
        return RawResponse.from_requests(resp, elapsed_ms=elapsed_ms)

    def probe(
        self,
        url: str,
        *,
        method: str = "GET",
        timeout: Optional[float] = None,
        **kwargs: Any,
    ) -> ProbeResult:
        try:
            response = self.fetch(
                url,
                method=method,
                timeout=timeout if timeout is not None else self.settings.probe_timeout,
                **kwargs,
            )
        except requests.RequestException as exc:
            if logger.isEnabledFor(logging.DEBUG):
                logger.exception("Probe %s %s failed", method.upper(), url)
            else:
                logger.warning("Probe %s %s failed: %s", method.upper(), url, exc)
            return ProbeResult(url=url, error=str(exc) or exc.__class__.__name__)
        return ProbeResult(url=url, response=response)

    def probe_many(
        self,
        urls: Sequence[str],
        *,
        timeout: Optional[float] = None,
        **kwargs: Any,
    ) -> List[ProbeResult]:
        """Probe every URL concurrently; results keep the order of ``urls``."""
        if not urls:
            return []
        workers = max(1, min(self.settings.probe_workers, len(urls)))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(lambda url: self.probe(url, timeout=timeout, **kwargs), urls))

    def pause(self) -> None:
        if self.settings.probe_delay > 0:
            time.sleep(self.settings.probe_delay)

    def close(self) -> None:
        with self._lock:
            sessions, self._sessions = self._sessions, []
        for session in sessions:
            session.close()


def _describe_failure(exc: BaseException) -> str:
    parts: List[str] = []
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        parts.append(str(current))
        parts.extend(repr(arg) for arg in current.args)
        current = current.__cause__ or current.__context__
    return " ".join(parts).lower()


def classify_failure(exc: requests.RequestException, url: str) -> FetchError:
    if isinstance(exc, requests.Timeout):
        return Timeout(url)
    if isinstance(exc, requests.TooManyRedirects):
        status = exc.response.status_code if exc.response is not None else None
        return RemoteHttpError(url, status, "Too many redirects")
    text = _describe_failure(exc)
    if any(marker in text for marker in HOST_NOT_FOUND_MARKERS):
        return HostNotFound(url)
    if any(marker in text for marker in CONNECTION_REFUSED_MARKERS):
        return ConnectionRefused(url)
    if "timed out" in text:
        return Timeout(url)
    return RemoteHttpError(url, None, str(exc) or exc.__class__.__name__)


def fetch_with_fallback(target: ScanTarget, client: HttpClient) -> Tuple[RawResponse, ScanTarget]:
    """Fetch the target page, retrying once under the other scheme.

    Any HTTP status counts as a successful fetch. Returns the response and the
    target whose scheme actually worked. When both attempts fail, the error of
    the first attempt is raised.
    """
    logger.info("Trying to connect to %s", target.effective_url)
    try:
        return client.fetch(target.effective_url), target
    except requests.RequestException as exc:
        first_exc = exc
        first_error = classify_failure(exc, target.effective_url)

    alternate = target.with_alternate_scheme()
    logger.info(
        "Connection with %s failed (%s), trying %s",
        target.scheme,
        first_exc,
        alternate.effective_url,
    )
    try:
        response = client.fetch(alternate.effective_url)
    except requests.RequestException as fallback_exc:
        logger.warning(
            "Both %s and %s failed: %s",
            target.effective_url,
            alternate.effective_url,
            fallback_exc,
        )
        raise first_error from first_exc
    logger.info("Connected with %s after fallback", alternate.scheme)
    return response, alternate
