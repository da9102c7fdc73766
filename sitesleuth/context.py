from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urljoin

from .config import ScanSettings
from .document import Document
from .fetcher import HeaderMap, HttpClient, RawResponse
from .models import ScanTarget


@dataclass(frozen=True)
class ScanContext:
    """Everything a check group may look at. Built once the main fetch succeeded."""

    target: ScanTarget
    response: RawResponse
    document: Document
    client: HttpClient
    settings: ScanSettings
    load_time_ms: float

    @property
    def headers(self) -> HeaderMap:
        return self.response.headers

    @property
    def body(self) -> str:
        return self.response.text

    @property
    def is_https(self) -> bool:
        return self.target.is_https

    def origin_url(self, path: str) -> str:
        return urljoin(self.target.base_origin + "/", path.lstrip("/"))
