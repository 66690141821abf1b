"""Deterministic cache keys for outbound requests.

A key is the lowercase hex SHA-256 of a compact JSON array whose layout is
fixed::

    ["v3", prefix, url, method, headers, mode, redirect, credentials,
     referrer, referrer_policy, integrity, cache, body_chunks]

Reordering the array changes every key, so the layout is part of the
on-disk contract.  Trace-context headers (``traceparent`` and
``tracestate``) carry a fresh id on every request and are dropped before
hashing.  Header names are lower-cased and sorted so the same header set
hashes identically whatever order it arrives in.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any, Optional, Sequence, Union

import httpx

from swrfetch.exceptions import HashingUnavailableError
from swrfetch.models import TransportOptions

KEY_VERSION = "v3"
TRACE_CONTEXT_HEADERS = frozenset({"traceparent", "tracestate"})

HeaderInput = Union[httpx.Headers, dict[str, str], Sequence[tuple[str, str]], None]


def ensure_sha256() -> None:
    """Fail fast when the interpreter's :mod:`hashlib` lacks SHA-256.

    Raises:
        HashingUnavailableError: If ``sha256`` is not an available algorithm.
    """
    if "sha256" not in hashlib.algorithms_available:
        raise HashingUnavailableError(
            "hashlib does not provide sha256; cache keys cannot be derived"
        )


def filter_headers(headers: HeaderInput) -> dict[str, str]:
    """Canonical header mapping used for hashing.

    Accepts anything :class:`httpx.Headers` accepts.  Names come back
    lower-cased and sorted, repeated names are joined with ``", "``, and
    trace-context headers are removed.
    """
    if not headers:
        return {}
    merged = httpx.Headers(headers)
    return {
        name: merged[name]
        for name in sorted(set(merged.keys()))
        if name not in TRACE_CONTEXT_HEADERS
    }


def derive_cache_key(
    url: Union[str, httpx.URL],
    method: str,
    headers: HeaderInput,
    transport: Optional[TransportOptions],
    body_chunks: Sequence[str],
    prefix: str = "",
) -> str:
    """Derive the cache key for a request.

    Args:
        url: Absolute request URL.
        method: HTTP method; upper-cased before hashing.
        headers: Caller-supplied request headers.
        transport: Fetch-style options; defaults when ``None``.
        body_chunks: Output of :func:`~swrfetch.client.body.normalize_body`.
        prefix: Namespace separating otherwise identical requests.

    Returns:
        A 64-character lowercase hex digest.
    """
    transport = transport or TransportOptions()
    components: list[Any] = [
        KEY_VERSION,
        prefix or "",
        str(url),
        method.upper(),
        filter_headers(headers),
        transport.mode,
        transport.redirect,
        transport.credentials,
        transport.referrer,
        transport.referrer_policy,
        transport.integrity,
        transport.cache,
        list(body_chunks),
    ]
    raw = json.dumps(components, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()
