"""Response formatting bridge -- maps :class:`httpx.Response` to the output system.

Used by the ``swrfetch fetch`` command.  The status line and the cache
observability headers go to stderr; the body goes to stdout through
:meth:`~swrfetch.output.OutputManager.format_response`.
"""

from __future__ import annotations

from typing import Any

import httpx

from swrfetch.cache.codec import (
    CACHE_AGE_HEADER,
    CACHE_EXPIRES_IN_HEADER,
    CACHE_STATUS_HEADER,
    is_text_content_type,
)
from swrfetch.output import get_output


def format_api_response(response: httpx.Response) -> None:
    """Print the status line, cache status and body of *response*."""
    output = get_output()
    output.info(f"HTTP {response.status_code} {response.reason_phrase or ''}")
    output.cache_status(cache_summary(response), response.headers.get(CACHE_STATUS_HEADER, "MISS"))

    content_type = response.headers.get("content-type", "")
    data = extract_response_data(response)
    if data is not None:
        output.format_response(data, content_type)


def cache_summary(response: httpx.Response) -> str:
    """One-line description of the cache headers, e.g. ``cache: HIT age=12s``."""
    parts = [f"cache: {response.headers.get(CACHE_STATUS_HEADER, 'MISS')}"]
    if CACHE_AGE_HEADER in response.headers:
        parts.append(f"age={response.headers[CACHE_AGE_HEADER]}s")
    if CACHE_EXPIRES_IN_HEADER in response.headers:
        parts.append(f"expires-in={response.headers[CACHE_EXPIRES_IN_HEADER]}s")
    return " ".join(parts)


def extract_response_data(response: httpx.Response) -> Any:
    """Extract the body from an HTTP response.

    Returns parsed JSON when possible, text for other textual types, raw
    ``bytes`` for binary bodies and ``None`` for an empty body.
    """
    if not response.content:
        return None

    content_type = response.headers.get("content-type")
    if not is_text_content_type(content_type):
        return response.content

    try:
        return response.json()
    except ValueError:
        return response.text
