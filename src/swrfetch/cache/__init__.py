"""Cache primitives for swrfetch.

This package holds everything the fetcher needs apart from the network:

* :func:`derive_cache_key` -- deterministic SHA-256 request fingerprints.
* :func:`encode_entry` / :func:`decode_entry` -- binary-safe conversion
  between :class:`httpx.Response` and stored
  :class:`~swrfetch.models.CacheEntry` records.
* :func:`compute_deadlines` / :func:`classify` -- the freshness policy.
* :class:`MemoryStore` and :class:`DiskStore` -- :class:`Store`
  implementations.

The pieces are composed by :class:`~swrfetch.client.fetcher.CachedFetcher`.
"""

from swrfetch.cache.codec import decode_entry, encode_entry, validate_entry
from swrfetch.cache.freshness import classify, compute_deadlines, store_ttl
from swrfetch.cache.keys import derive_cache_key, ensure_sha256, filter_headers
from swrfetch.cache.store import DiskStore, MemoryStore, Store

__all__ = [
    "DiskStore",
    "MemoryStore",
    "Store",
    "classify",
    "compute_deadlines",
    "decode_entry",
    "derive_cache_key",
    "encode_entry",
    "ensure_sha256",
    "filter_headers",
    "store_ttl",
    "validate_entry",
]
