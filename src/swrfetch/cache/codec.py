"""Entry codec: :class:`httpx.Response` <-> :class:`~swrfetch.models.CacheEntry`.

Stores are assumed to be JSON-safe, so bodies are kept either as text
(for textual content types whose bytes are valid in their charset) or
as base64 with ``is_binary`` set, so both round-trip byte for byte.  Bodies
are stored after content decoding, which is why ``content-encoding``,
``content-length`` and ``transfer-encoding`` are never persisted and are
stripped again on the way out.

Every decoded response carries ``X-Cache-Status`` and ``X-Cache-Age``, and
``X-Cache-Expires-In`` when the entry has an expiry.
"""

from __future__ import annotations

import base64
import binascii
import codecs
from typing import Any, Iterable, Optional

import httpx
from pydantic import ValidationError

from swrfetch.cache.freshness import Deadlines
from swrfetch.exceptions import MalformedEntryError
from swrfetch.models import CacheEntry, CacheStatus, EntryBody

CACHE_STATUS_HEADER = "X-Cache-Status"
CACHE_AGE_HEADER = "X-Cache-Age"
CACHE_EXPIRES_IN_HEADER = "X-Cache-Expires-In"

TEXT_CONTENT_TYPES = frozenset(
    {
        "application/json",
        "application/javascript",
        "application/xml",
        "application/x-www-form-urlencoded",
        "image/svg+xml",
    }
)

# Invalid once the body has been decoded and re-encoded.
_UNSTORED_HEADERS = frozenset({"content-length", "content-encoding", "transfer-encoding"})


def media_type(content_type: Optional[str]) -> str:
    """``"text/html; charset=utf-8"`` -> ``"text/html"``."""
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


def charset(content_type: Optional[str], default: str = "utf-8") -> str:
    """Charset parameter of *content_type*, or *default*."""
    if content_type:
        for param in content_type.split(";")[1:]:
            name, _, value = param.partition("=")
            if name.strip().lower() == "charset" and value.strip():
                candidate = value.strip().strip('"')
                try:
                    codecs.lookup(candidate)
                except LookupError:
                    return default
                return candidate
    return default


def is_text_content_type(content_type: Optional[str]) -> bool:
    """Whether a body of this type can be stored as text without loss.

    Responses without a content type are treated as binary.
    """
    mime = media_type(content_type)
    return mime.startswith("text/") or mime in TEXT_CONTENT_TYPES


def _strict_text(content: bytes, content_type: Optional[str]) -> Optional[str]:
    """Body as text if it is textual and valid in its charset, else ``None``."""
    if not is_text_content_type(content_type):
        return None
    try:
        return content.decode(charset(content_type))
    except UnicodeDecodeError:
        return None


def encode_entry(
    response: httpx.Response,
    deadlines: Deadlines,
    now: float,
    tags: Iterable[str] = (),
) -> CacheEntry:
    """Build a storable entry from a response whose body has been read.

    Args:
        response: Origin response; ``await response.aread()`` must have
            been called.
        deadlines: Output of :func:`~swrfetch.cache.freshness.compute_deadlines`.
        now: Storage time (POSIX seconds).
        tags: Opaque labels to keep with the entry.

    Returns:
        The new :class:`CacheEntry`.
    """
    content_type = response.headers.get("content-type")
    text = _strict_text(response.content, content_type)
    if text is not None:
        body = EntryBody(data=text, is_binary=False, content_type=content_type)
    else:
        body = EntryBody(
            data=base64.b64encode(response.content).decode("ascii"),
            is_binary=True,
            content_type=content_type,
        )

    headers = {
        name: value
        for name, value in response.headers.items()
        if name not in _UNSTORED_HEADERS
    }
    return CacheEntry(
        body=body,
        status_code=response.status_code,
        status_text=response.reason_phrase,
        headers=headers,
        stored_at=now,
        revalidate_at=deadlines.revalidate_at,
        expires_at=deadlines.expires_at,
        tags=list(tags),
    )


def validate_entry(raw: Any) -> CacheEntry:
    """Check that a stored record is structurally a :class:`CacheEntry`.

    Raises:
        MalformedEntryError: On a missing status code or body, headers
            that are not a string mapping, and similar damage.
    """
    if isinstance(raw, CacheEntry):
        return raw
    try:
        return CacheEntry.model_validate(raw)
    except ValidationError as exc:
        raise MalformedEntryError(
            f"Stored record is not a cache entry: {exc.error_count()} error(s)"
        ) from exc


def decode_entry(
    entry: CacheEntry,
    status: CacheStatus,
    now: float,
    request: Optional[httpx.Request] = None,
) -> httpx.Response:
    """Rebuild a response from *entry*, labelled with *status*.

    Raises:
        MalformedEntryError: If a binary body is not valid base64 or a text
            body cannot be encoded in its charset.
    """
    # Header values come back as str; httpx only accepts ASCII str values.
    headers = httpx.Headers(
        [
            (name, value.encode("utf-8"))
            for name, value in entry.headers.items()
            if name not in _UNSTORED_HEADERS
        ]
    )
    if "content-type" not in headers and entry.body.content_type:
        headers["content-type"] = entry.body.content_type

    if entry.body.is_binary:
        try:
            content = base64.b64decode(entry.body.data, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise MalformedEntryError(f"Binary body is not valid base64: {exc}") from exc
    else:
        try:
            content = entry.body.data.encode(charset(headers.get("content-type")))
        except UnicodeEncodeError as exc:
            raise MalformedEntryError(f"Text body does not fit its charset: {exc}") from exc

    headers[CACHE_STATUS_HEADER] = status.value
    headers[CACHE_AGE_HEADER] = str(max(0, int(now - entry.stored_at)))
    if entry.expires_at is not None:
        headers[CACHE_EXPIRES_IN_HEADER] = str(max(0, int(entry.expires_at - now)))

    extensions: dict[str, Any] = {}
    if entry.status_text:
        extensions["reason_phrase"] = entry.status_text.encode("ascii", errors="ignore")

    return httpx.Response(
        status_code=entry.status_code,
        headers=headers,
        content=content,
        request=request,
        extensions=extensions,
    )
