from __future__ import annotations

import re
from urllib.parse import urlparse

from .errors import InvalidInputError
from .models import ScanTarget

SUPPORTED_SCHEMES = ("http", "https")
SCHEME_PATTERN = re.compile(r"^([a-zA-Z][a-zA-Z0-9+.-]*)://")


def _normalize_input(raw_input: str) -> str:
    cleaned = raw_input.strip()
    match = SCHEME_PATTERN.match(cleaned)
    if match:
        scheme = match.group(1).lower()
        if scheme not in SUPPORTED_SCHEMES:
            raise InvalidInputError(raw_input, f"Unsupported URL scheme: {scheme}")
        rest = cleaned[match.end():]
    else:
        # Bare hosts get https first; fetch_with_fallback corrects a wrong guess.
        scheme, rest = "https", cleaned
    return f"{scheme}://{rest.rstrip('/')}"


def resolve(raw_input: str) -> ScanTarget:
    """Turn caller input into a fetchable, protocol-qualified target."""
    if not isinstance(raw_input, str) or not raw_input.strip():
        raise InvalidInputError(str(raw_input), "URL is required")

    url = _normalize_input(raw_input)
    try:
        parsed = urlparse(url)
        parsed.port
    except ValueError:
        raise InvalidInputError(raw_input) from None
    if not parsed.hostname or any(ch.isspace() for ch in parsed.netloc):
        raise InvalidInputError(raw_input)
    return ScanTarget.for_url(raw_input, url)
