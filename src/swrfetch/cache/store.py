"""Key-value stores that hold serialised cache entries.

The fetcher talks to storage only through the :class:`Store` protocol, so
any async key-value backend with a per-key TTL can be plugged in.  Two
implementations ship:

* :class:`MemoryStore` -- a process-local dict with TTLs, suitable for
  tests and short-lived processes.
* :class:`DiskStore` -- a persistent store backed by :mod:`diskcache`.
  diskcache is synchronous, so calls are offloaded with
  :func:`asyncio.to_thread`.

Values are the JSON-safe dicts produced by
``CacheEntry.model_dump(mode="json")``.  Stores never validate them; that
is the codec's job on the way out.
"""

from __future__ import annotations

import asyncio
import copy
import time
from pathlib import Path
from typing import Any, Callable, Optional, Protocol, runtime_checkable

import diskcache


@runtime_checkable
class Store(Protocol):
    """Async key-value collaborator used by :class:`~swrfetch.client.fetcher.CachedFetcher`.

    Either method may raise; the fetcher treats every store failure as
    non-fatal.
    """

    async def get(self, key: str) -> Optional[Any]:
        """Return the value stored under *key*, or ``None``."""
        ...

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        """Store *value* under *key* for *ttl_seconds*."""
        ...


class MemoryStore:
    """In-process store with per-key expiry.

    Values are deep-copied on the way in and out so callers cannot mutate
    what is stored, which mirrors a serialising backend.

    Args:
        clock: Time source in POSIX seconds; injectable for tests.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._data: dict[str, tuple[Any, float]] = {}

    async def get(self, key: str) -> Optional[Any]:
        item = self._data.get(key)
        if item is None:
            return None
        value, expires_at = item
        if self._clock() >= expires_at:
            del self._data[key]
            return None
        return copy.deepcopy(value)

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        self._data[key] = (copy.deepcopy(value), self._clock() + ttl_seconds)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        self._data.clear()

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: object) -> bool:
        return key in self._data


class DiskStore:
    """Disk-backed store for serialised cache entries.

    Entries live in a ``responses/`` subdirectory of *cache_dir* and are
    evicted by diskcache once their TTL elapses.

    Args:
        cache_dir: Root directory for the cache.

    Example::

        from swrfetch.cache import DiskStore
        from swrfetch.client import CachedFetcher

        store = DiskStore("/tmp/swrfetch")
        async with CachedFetcher(store) as fetcher:
            response = await fetcher.get("https://api.example.com/users")
        store.close()
    """

    def __init__(self, cache_dir: str | Path) -> None:
        self._cache_dir = Path(cache_dir)
        self._cache: Optional[diskcache.Cache] = diskcache.Cache(
            str(self._cache_dir / "responses")
        )

    @property
    def directory(self) -> Path:
        """Directory holding the diskcache files."""
        return self._cache_dir / "responses"

    async def get(self, key: str) -> Optional[Any]:
        return await asyncio.to_thread(self._require().get, key)

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        await asyncio.to_thread(self._require().set, key, value, expire=ttl_seconds)

    async def delete(self, key: str) -> None:
        """Remove one entry, e.g. after an external tag-based invalidation."""
        await asyncio.to_thread(self._require().delete, key)

    def clear(self) -> None:
        """Remove all entries from the store."""
        if self._cache is not None:
            self._cache.clear()

    def stats(self) -> dict[str, Any]:
        """Return store statistics.

        Returns:
            A ``dict`` with ``size`` (number of entries) and ``directory``
            (str path), or ``{"open": False}`` after :meth:`close`.
        """
        if self._cache is None:
            return {"open": False}
        return {
            "open": True,
            "size": len(self._cache),
            "directory": str(self.directory),
        }

    def close(self) -> None:
        """Close the underlying :class:`diskcache.Cache` and release resources."""
        if self._cache is not None:
            self._cache.close()
            self._cache = None

    def _require(self) -> diskcache.Cache:
        if self._cache is None:
            raise RuntimeError("DiskStore is closed")
        return self._cache
