"""Errors that can escape :func:`sitesleuth.scanner.perform_scan`.

Only input validation and the primary fetch (after the protocol fallback)
raise. Auxiliary probes report failures through ``ProbeResult`` instead.
"""

from __future__ import annotations

from typing import Optional


class ScanError(Exception):
    """Base class for every error a scan surfaces to its caller."""


class InvalidInputError(ScanError):
    def __init__(self, raw_input: str, reason: str = "Invalid URL provided") -> None:
        super().__init__(reason)
        self.raw_input = raw_input


class FetchError(ScanError):
    message = "Scan failed: unknown network error"

    def __init__(self, url: str, message: Optional[str] = None) -> None:
        super().__init__(message or self.message)
        self.url = url


class ConnectionRefused(FetchError):
    message = "Connection refused - the website may be down or unreachable"


class HostNotFound(FetchError):
    message = "Website not found - please check the URL is correct"


class Timeout(FetchError):
    message = "Request timeout - the website took too long to respond"


class RemoteHttpError(FetchError):
    def __init__(self, url: str, status: Optional[int] = None, status_text: str = "") -> None:
        if status is not None:
            message = f"HTTP {status}: {status_text or 'Server error'}"
        else:
            message = f"Scan failed: {status_text or 'Unknown network error'}"
        super().__init__(url, message)
        self.status = status
        self.status_text = status_text
