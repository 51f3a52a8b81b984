from __future__ import annotations

import json
import logging
from typing import Any
from urllib.parse import parse_qsl, unquote, urlsplit

logger = logging.getLogger(__name__)


def query_string_to_dict(text: str) -> dict[str, str]:
    """Decode ``key=value&key=value`` without any type coercion.

    Keys and values are percent-decoded (``+`` stays a literal plus); an item
    without ``=`` decodes to an empty string. Later keys win.
    """
    if not text:
        return {}
    out: dict[str, str] = {}
    for item in text.split("&"):
        key, _, value = item.partition("=")
        out[unquote(key)] = unquote(value)
    return out


def parse_body(raw: bytes | str | None) -> dict[str, Any]:
    if not raw:
        return {}
    text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
    try:
        # { "url": "https://...", "fileType": "png" }
        parsed = json.loads(text)
    except ValueError:
        parsed = None
    if isinstance(parsed, dict):
        return parsed
    # url=https://...&fileType=png
    return query_string_to_dict(text)


def parse_url_query_params(url: str | None) -> dict[str, str] | None:
    if not url:
        return None
    try:
        parts = urlsplit(url)
    except ValueError as e:
        logger.warning("Could not parse query string of %r: %s", url, e)
        return None
    return dict(parse_qsl(parts.query, keep_blank_values=True))
