"""swrfetch -- stale-while-revalidate caching in front of HTTP fetches.

Wraps an :class:`httpx.AsyncClient` with transparent request/response
caching: deterministic SHA-256 cache keys (request bodies included, so
POST and PUT queries cache too), binary-safe stored entries, and
background refresh of stale entries while the stale copy is served.

Typical use::

    from swrfetch import CachedFetcher, FetchOptions, MemoryStore

    async with CachedFetcher(MemoryStore()) as fetcher:
        resp = await fetcher.get("https://api.example.com/products",
                                 options=FetchOptions(revalidate=1800))
        resp.headers["X-Cache-Status"]   # "MISS", later "HIT" or "STALE"

Modules:
    cache: Key derivation, entry codec, freshness policy and stores.
    client: The fetcher, body normalisation and the detached-task scheduler.
    models: Pydantic models and per-request option types.
    config: XDG-aware configuration resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    app: The ``swrfetch`` command line.
"""

__version__ = "0.1.0"

from swrfetch.cache import DiskStore, MemoryStore, Store  # noqa: E402
from swrfetch.client import Blob, CachedFetcher, TaskScheduler, cached_fetch  # noqa: E402
from swrfetch.models import (  # noqa: E402
    CacheConfig,
    CacheEntry,
    CacheMode,
    CacheStatus,
    FetchOptions,
    TransportOptions,
)

__all__ = [
    "Blob",
    "CacheConfig",
    "CacheEntry",
    "CacheMode",
    "CacheStatus",
    "CachedFetcher",
    "DiskStore",
    "FetchOptions",
    "MemoryStore",
    "Store",
    "TaskScheduler",
    "TransportOptions",
    "cached_fetch",
]
