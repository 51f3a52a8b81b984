from __future__ import annotations

import re
from typing import Any
from urllib.parse import urlsplit

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z\d+.-]*:")


def is_valid_url(value: Any) -> bool:
    """True for absolute URIs: a scheme plus an authority (``//host``) or an opaque part."""
    if not isinstance(value, str):
        return False
    candidate = value.strip()
    if not _SCHEME_RE.match(candidate):
        return False
    try:
        parts = urlsplit(candidate)
        # Raises ValueError for ports that are not numbers or out of range.
        parts.port
    except ValueError:
        return False
    rest = candidate[len(parts.scheme) + 1:]
    if rest.startswith("//"):
        return bool(parts.hostname) or parts.scheme.lower() == "file"
    return bool(rest)
