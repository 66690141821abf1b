"""HTTP client side of swrfetch.

Classes:
    :class:`CachedFetcher` -- the caching front for :class:`httpx.AsyncClient`.
    :class:`TaskScheduler` -- detached runner for refreshes and store writes.
    :class:`Blob` -- typed binary request body.

Functions:
    :func:`cached_fetch` -- one-shot helper around :class:`CachedFetcher`.
    :func:`normalize_body` -- request body normalisation.

Example::

    from swrfetch.cache import MemoryStore
    from swrfetch.client import CachedFetcher
    from swrfetch.models import FetchOptions

    async with CachedFetcher(MemoryStore()) as fetcher:
        resp = await fetcher.get("https://api.example.com/config",
                                 options=FetchOptions(revalidate=False))
"""

from swrfetch.client.body import Blob, normalize_body
from swrfetch.client.fetcher import CACHEABLE_METHODS, CachedFetcher, cached_fetch
from swrfetch.client.scheduler import TaskScheduler

__all__ = [
    "Blob",
    "CACHEABLE_METHODS",
    "CachedFetcher",
    "TaskScheduler",
    "cached_fetch",
    "normalize_body",
]
