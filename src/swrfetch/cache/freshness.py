"""Freshness policy: revalidation and expiry deadlines for cache entries.

Deadlines are computed once, when an entry is encoded, and stored on the
entry as absolute POSIX timestamps.  Reads only compare those timestamps
with the current time:

* ``EXPIRED`` when ``now > expires_at`` (indistinguishable from absent),
* ``STALE`` when ``revalidate_at`` is set and ``now > revalidate_at``,
* ``FRESH`` otherwise, including entries with neither timestamp.

The revalidation value is three-way: ``False`` never revalidates but still
expires after a year, ``0`` disables caching before this module is ever
consulted, and a positive integer is a freshness window in seconds.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from swrfetch.exceptions import InvalidOptionsError
from swrfetch.models import CacheEntry, Freshness, Revalidate, check_revalidate

ONE_DAY = 86400
NEVER_REVALIDATE_LIFETIME = 365 * ONE_DAY
STALE_WINDOW_FACTOR = 10
MIN_STORE_TTL = 60
DEFAULT_STORE_TTL = ONE_DAY


@dataclass(frozen=True)
class Deadlines:
    """Absolute timestamps stamped onto a new entry."""

    revalidate_at: Optional[float]
    expires_at: Optional[float]


def disables_caching(revalidate: Revalidate) -> bool:
    """Return ``True`` only for an explicit integer ``0``.

    ``False == 0`` in Python, so a plain equality test would send
    never-revalidate requests around the cache.
    """
    return (
        isinstance(revalidate, int)
        and not isinstance(revalidate, bool)
        and revalidate == 0
    )


def compute_deadlines(
    revalidate: Revalidate,
    expires: Optional[int],
    now: float,
) -> Deadlines:
    """Compute ``revalidate_at`` / ``expires_at`` for an entry stored at *now*.

    Args:
        revalidate: ``False`` or ``None`` for no revalidation, a positive
            number of seconds otherwise.
        expires: Optional absolute lifetime in seconds.
        now: Current POSIX time.

    Returns:
        The entry's :class:`Deadlines`.

    Raises:
        InvalidOptionsError: If *revalidate* is ``0`` (caching is skipped
            upstream) or otherwise invalid.
    """
    check_revalidate(revalidate)
    if disables_caching(revalidate):
        raise InvalidOptionsError("revalidate=0 disables caching; no deadlines apply")

    if revalidate is None or revalidate is False:
        lifetime = expires if expires is not None else NEVER_REVALIDATE_LIFETIME
        return Deadlines(revalidate_at=None, expires_at=now + lifetime)

    if expires is not None and expires > revalidate:
        lifetime = expires
    else:
        lifetime = max(ONE_DAY, STALE_WINDOW_FACTOR * revalidate)
    return Deadlines(revalidate_at=now + revalidate, expires_at=now + lifetime)


def classify(entry: Optional[CacheEntry], now: float) -> Freshness:
    """Classify *entry* at time *now*."""
    if entry is None:
        return Freshness.ABSENT
    if entry.expires_at is not None and now > entry.expires_at:
        return Freshness.EXPIRED
    if entry.revalidate_at is not None and now > entry.revalidate_at:
        return Freshness.STALE
    return Freshness.FRESH


def store_ttl(
    expires_at: Optional[float],
    now: float,
    minimum: int = MIN_STORE_TTL,
    default: int = DEFAULT_STORE_TTL,
) -> int:
    """TTL in whole seconds to hand to the store alongside an entry.

    Never below *minimum*, so entries close to expiry do not thrash the
    store.  *default* applies when no expiry was computed.
    """
    if expires_at is None:
        return default
    return max(minimum, math.ceil(expires_at - now))
