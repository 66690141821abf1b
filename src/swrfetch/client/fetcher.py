"""Cached fetch orchestration with stale-while-revalidate semantics.

This module provides :class:`CachedFetcher`, the public entry point.  It
wraps an :class:`httpx.AsyncClient` and composes the cache primitives:

1. **Bypass** -- ``CacheMode.BYPASS``, ``revalidate=0`` or a disabled
   config go straight to the origin; no key, no store access.
2. **Key** -- the body is normalised (streams are drained into a
   replayable buffer) and a SHA-256 key is derived.
3. **Lookup** -- absent, expired or malformed records are misses.
4. **Hit / stale** -- a fresh entry is returned as ``HIT``; a stale one is
   returned as ``STALE`` while a detached refresh rewrites the entry.
5. **Miss** -- the origin response is returned as ``MISS``; 2xx responses
   to GET, POST and PUT are written to the store in the background.

Store and hashing problems never reach the caller: they are logged and
the request falls back to the origin.  Origin failures are never masked
and surface as the original :mod:`httpx` exceptions.

See Also:
    :mod:`swrfetch.cache` for the key, codec, freshness and store pieces.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

import httpx

from swrfetch.cache.codec import (
    CACHE_STATUS_HEADER,
    decode_entry,
    encode_entry,
    validate_entry,
)
from swrfetch.cache.freshness import (
    classify,
    compute_deadlines,
    disables_caching,
    store_ttl,
)
from swrfetch.cache.keys import HeaderInput, derive_cache_key, ensure_sha256
from swrfetch.cache.store import Store
from swrfetch.client.body import NormalizedBody, normalize_body
from swrfetch.client.scheduler import TaskScheduler
from swrfetch.exceptions import MalformedEntryError
from swrfetch.models import (
    CacheConfig,
    CacheEntry,
    CacheMode,
    CacheStatus,
    FetchOptions,
    Freshness,
    Revalidate,
    TransportOptions,
    check_revalidate,
)

logger = logging.getLogger(__name__)

CACHEABLE_METHODS = frozenset({"GET", "POST", "PUT"})


@dataclass
class _PreparedRequest:
    """Everything needed to send a request again from a background task."""

    url: str
    method: str
    headers: httpx.Headers
    body: NormalizedBody
    transport: TransportOptions
    revalidate: Revalidate
    expires: Optional[int]
    tags: list[str]


class CachedFetcher:
    """Caching front for an HTTP client.

    Args:
        store: Key-value collaborator holding serialised entries.
        client: Client used to reach the origin.  When ``None`` one is
            created and closed by :meth:`aclose`.
        config: Defaults for options a request does not set.
        scheduler: Detached-task runner for refreshes and store writes.
        clock: Time source in POSIX seconds.

    Raises:
        HashingUnavailableError: If SHA-256 is unavailable.

    Example::

        async with CachedFetcher(MemoryStore()) as fetcher:
            response = await fetcher.get(
                "https://api.example.com/products",
                options=FetchOptions(revalidate=1800, tags=["products"]),
            )
            print(response.headers["X-Cache-Status"])
    """

    def __init__(
        self,
        store: Store,
        client: Optional[httpx.AsyncClient] = None,
        *,
        config: Optional[CacheConfig] = None,
        scheduler: Optional[TaskScheduler] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        ensure_sha256()
        self._store = store
        self._owns_client = client is None
        self._client = client if client is not None else httpx.AsyncClient()
        self._config = config or CacheConfig()
        self._scheduler = scheduler or TaskScheduler()
        self._clock = clock

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> CachedFetcher:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Wait for detached work, then close the client if this fetcher created it."""
        await self._scheduler.join()
        if self._owns_client:
            await self._client.aclose()

    async def join(self) -> None:
        """Wait for pending background refreshes and store writes."""
        await self._scheduler.join()

    # ------------------------------------------------------------------ #
    # Public request methods
    # ------------------------------------------------------------------ #

    async def fetch(
        self,
        url: Union[str, httpx.URL],
        *,
        method: str = "GET",
        headers: HeaderInput = None,
        body: Any = None,
        options: Optional[FetchOptions] = None,
        transport: Optional[TransportOptions] = None,
    ) -> httpx.Response:
        """Fetch *url* through the cache.

        Args:
            url: Absolute request URL.
            method: HTTP method.
            headers: Request headers (mapping, pair list or
                :class:`httpx.Headers`).
            body: Any body accepted by
                :func:`~swrfetch.client.body.coerce_body`.  Single-use
                streams are consumed.
            options: Cache controls for this request.
            transport: Fetch-style options that take part in the key.

        Returns:
            The response, carrying an ``X-Cache-Status`` header.

        Raises:
            httpx.HTTPError: When the origin cannot be reached.
            BodyReadError: When a streaming body fails while draining.
            InvalidOptionsError: On invalid cache options.
        """
        options = options or FetchOptions()
        revalidate = options.revalidate
        if revalidate is None:
            revalidate = self._config.default_revalidate
        check_revalidate(revalidate)
        expires = options.expires if options.expires is not None else self._config.default_expires

        transport = (transport or TransportOptions()).model_copy(
            update={"cache": options.cache.request_cache}
        )
        normalized = await normalize_body(body)
        prepared = _PreparedRequest(
            url=str(url),
            method=method.upper(),
            headers=self._outbound_headers(headers, normalized),
            body=normalized,
            transport=transport,
            revalidate=revalidate,
            expires=expires,
            tags=list(options.tags),
        )

        if (
            not self._config.enabled
            or options.cache is CacheMode.BYPASS
            or disables_caching(revalidate)
        ):
            logger.debug("Cache bypassed for %s %s", prepared.method, prepared.url)
            return self._tag(await self._send(prepared), CacheStatus.MISS)

        prefix = options.key_prefix if options.key_prefix is not None else self._config.key_prefix
        try:
            key = derive_cache_key(
                prepared.url, prepared.method, headers, transport, normalized.chunks, prefix
            )
        except Exception as exc:
            logger.warning("Cache key derivation failed for %s: %s", prepared.url, exc)
            return self._tag(await self._send(prepared), CacheStatus.MISS)

        entry = await self._lookup(key)
        now = self._clock()
        state = classify(entry, now)

        if entry is not None and state in (Freshness.FRESH, Freshness.STALE):
            status = CacheStatus.HIT if state is Freshness.FRESH else CacheStatus.STALE
            try:
                response = decode_entry(entry, status, now, request=self._build_request(prepared))
            except Exception as exc:
                logger.warning("Discarding undecodable cache entry %s: %s", key[:12], exc)
            else:
                logger.debug("Cache %s for %s %s", status.value, prepared.method, prepared.url)
                if status is CacheStatus.STALE:
                    self._scheduler.schedule(
                        self._refresh(key, prepared), name=f"swrfetch-refresh-{key[:12]}"
                    )
                return response

        logger.debug("Cache MISS (%s) for %s %s", state.value, prepared.method, prepared.url)
        response = await self._send(prepared)
        if self._is_cacheable(prepared.method, response):
            await response.aread()
            entry = self._encode(response, prepared)
            if entry is not None:
                self._scheduler.schedule(
                    self._write(key, entry), name=f"swrfetch-store-{key[:12]}"
                )
        return self._tag(response, CacheStatus.MISS)

    async def get(self, url: Union[str, httpx.URL], **kwargs: Any) -> httpx.Response:
        """Send a cached GET request.

        Args:
            url: Absolute request URL.
            **kwargs: Forwarded to :meth:`fetch`.
        """
        return await self.fetch(url, method="GET", **kwargs)

    async def post(self, url: Union[str, httpx.URL], **kwargs: Any) -> httpx.Response:
        """Send a cached POST request; the body takes part in the key."""
        return await self.fetch(url, method="POST", **kwargs)

    async def put(self, url: Union[str, httpx.URL], **kwargs: Any) -> httpx.Response:
        """Send a cached PUT request; the body takes part in the key."""
        return await self.fetch(url, method="PUT", **kwargs)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _outbound_headers(headers: HeaderInput, body: NormalizedBody) -> httpx.Headers:
        outbound = httpx.Headers(headers or {})
        if body.content_type and "content-type" not in outbound:
            outbound["content-type"] = body.content_type
        return outbound

    @staticmethod
    def _build_request(prepared: _PreparedRequest) -> httpx.Request:
        return httpx.Request(prepared.method, prepared.url, headers=prepared.headers)

    @staticmethod
    def _is_cacheable(method: str, response: httpx.Response) -> bool:
        return method in CACHEABLE_METHODS and response.is_success

    @staticmethod
    def _tag(response: httpx.Response, status: CacheStatus) -> httpx.Response:
        response.headers[CACHE_STATUS_HEADER] = status.value
        return response

    async def _send(self, prepared: _PreparedRequest) -> httpx.Response:
        return await self._client.request(
            prepared.method,
            prepared.url,
            headers=prepared.headers,
            follow_redirects=prepared.transport.follow_redirects,
            **prepared.body.request_kwargs(),
        )

    async def _lookup(self, key: str) -> Optional[CacheEntry]:
        """Read and validate the entry under *key*; ``None`` on any problem."""
        try:
            raw = await self._store.get(key)
        except Exception as exc:
            logger.warning("Cache read failed for %s: %s", key[:12], exc)
            return None
        if raw is None:
            return None
        try:
            return validate_entry(raw)
        except MalformedEntryError as exc:
            logger.warning("Ignoring malformed cache entry %s: %s", key[:12], exc)
            return None

    def _encode(self, response: httpx.Response, prepared: _PreparedRequest) -> Optional[CacheEntry]:
        now = self._clock()
        try:
            deadlines = compute_deadlines(prepared.revalidate, prepared.expires, now)
            return encode_entry(response, deadlines, now, prepared.tags)
        except Exception as exc:
            logger.warning("Could not encode response for %s: %s", prepared.url, exc)
            return None

    async def _write(self, key: str, entry: CacheEntry) -> None:
        ttl = store_ttl(
            entry.expires_at,
            self._clock(),
            minimum=self._config.min_store_ttl,
            default=self._config.default_store_ttl,
        )
        try:
            await self._store.set(key, entry.model_dump(mode="json"), ttl_seconds=ttl)
        except Exception as exc:
            logger.warning("Failed to cache response under %s: %s", key[:12], exc)

    async def _refresh(self, key: str, prepared: _PreparedRequest) -> None:
        """Re-fetch the origin and replace the stale entry on success."""
        try:
            response = await self._send(prepared)
            if not self._is_cacheable(prepared.method, response):
                logger.debug(
                    "Background refresh of %s returned %s; keeping stale entry",
                    prepared.url,
                    response.status_code,
                )
                return
            await response.aread()
        except Exception as exc:
            logger.warning("Background refresh failed for %s: %s", prepared.url, exc)
            return

        entry = self._encode(response, prepared)
        if entry is not None:
            await self._write(key, entry)


async def cached_fetch(
    url: Union[str, httpx.URL],
    *,
    store: Store,
    client: Optional[httpx.AsyncClient] = None,
    config: Optional[CacheConfig] = None,
    **kwargs: Any,
) -> httpx.Response:
    """One-shot cached fetch.

    Builds a short-lived :class:`CachedFetcher`, performs the request and
    waits for any detached work before returning.  Long-running services
    should keep one fetcher instead so refreshes are not awaited inline.

    Args:
        url: Absolute request URL.
        store: Key-value collaborator.
        client: Optional client; left open when supplied.
        config: Optional cache defaults.
        **kwargs: Forwarded to :meth:`CachedFetcher.fetch`.
    """
    async with CachedFetcher(store, client, config=config) as fetcher:
        return await fetcher.fetch(url, **kwargs)
