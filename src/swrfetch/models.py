"""Canonical models shared across all swrfetch modules.

This is the single source of truth for data shapes in the project. The
models fall into three groups:

**Configuration models** -- :class:`CacheConfig` is persisted as JSON in the
user's config directory and resolved by :mod:`swrfetch.config`.

**Per-request models** -- :class:`FetchOptions` (cache mode, revalidation,
expiry, tags, key prefix) and :class:`TransportOptions` (the fetch-style
request options that take part in the cache key).

**Stored records** -- :class:`CacheEntry` and :class:`EntryBody`, the
JSON-safe unit written to and read back from a
:class:`~swrfetch.cache.store.Store`.  Validation of a stored record goes
through :meth:`CacheEntry.model_validate`, so structural damage surfaces
as a pydantic ``ValidationError``.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from swrfetch.exceptions import InvalidOptionsError

Revalidate = Union[Literal[False], int, None]
"""``False`` = never revalidate, ``0`` = do not cache, ``N > 0`` = seconds."""


# --- Enumerations ---


class CacheMode(str, enum.Enum):
    """How a request interacts with the cache.

    ``BYPASS`` never touches the store.  ``FORCE_CHECK`` and ``AUTO`` both
    consult the store first; they differ only in the fetch ``cache`` value
    that takes part in the cache key.
    """

    BYPASS = "bypass"
    FORCE_CHECK = "force-check-then-fetch"
    AUTO = "auto"

    @property
    def request_cache(self) -> str:
        """The fetch ``RequestCache`` value this mode corresponds to."""
        return _REQUEST_CACHE[self]


_REQUEST_CACHE = {
    CacheMode.BYPASS: "no-store",
    CacheMode.FORCE_CHECK: "force-cache",
    CacheMode.AUTO: "default",
}


class CacheStatus(str, enum.Enum):
    """Value of the ``X-Cache-Status`` header attached to every response."""

    HIT = "HIT"
    STALE = "STALE"
    MISS = "MISS"


class Freshness(str, enum.Enum):
    """Read-time classification of a stored entry."""

    FRESH = "fresh"
    STALE = "stale"
    EXPIRED = "expired"
    ABSENT = "absent"


# --- Configuration ---


class CacheConfig(BaseModel):
    """Cache settings resolved from ``config.json``, the environment and CLI flags.

    Per-request :class:`FetchOptions` take precedence over the defaults
    declared here.
    """

    enabled: bool = Field(
        default=True, description="When false every request behaves as bypass"
    )
    key_prefix: str = Field(
        default="", description="Default cache key namespace"
    )
    default_revalidate: Optional[Union[Literal[False], int]] = Field(
        default=None,
        description="Revalidation window used when a request sets none",
    )
    default_expires: Optional[int] = Field(
        default=None, description="Absolute lifetime used when a request sets none"
    )
    min_store_ttl: int = Field(
        default=60, description="Lower bound for the store TTL in seconds"
    )
    default_store_ttl: int = Field(
        default=86400, description="Store TTL when no expiry was computed"
    )
    cache_dir: Optional[str] = Field(
        default=None, description="Directory for the disk-backed store"
    )

    @field_validator("default_revalidate", mode="before")
    @classmethod
    def _check_default_revalidate(cls, value: object) -> object:
        if value is True:
            raise ValueError("default_revalidate must be false or a number of seconds")
        if isinstance(value, int) and value < 0:
            raise ValueError("default_revalidate must not be negative")
        return value

    @field_validator("min_store_ttl", "default_store_ttl")
    @classmethod
    def _positive_ttl(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("store TTLs must be positive")
        return value


# --- Per-request options ---


@dataclass
class FetchOptions:
    """Caller-facing cache controls for a single request.

    Attributes:
        cache: How the request interacts with the cache.
        revalidate: ``False`` never revalidates (365-day backstop), ``0``
            skips the cache entirely, a positive integer is the number of
            seconds an entry stays fresh.  ``None`` defers to
            :attr:`CacheConfig.default_revalidate`.
        expires: Absolute lifetime in seconds.  Only honoured when it
            exceeds ``revalidate``.
        tags: Opaque labels stored with the entry for external
            invalidation.  Never acted on by swrfetch itself.
        key_prefix: Cache namespace; ``None`` defers to
            :attr:`CacheConfig.key_prefix`.
    """

    cache: CacheMode = CacheMode.AUTO
    revalidate: Revalidate = None
    expires: Optional[int] = None
    tags: list[str] = field(default_factory=list)
    key_prefix: Optional[str] = None

    def __post_init__(self) -> None:
        self.cache = CacheMode(self.cache)
        check_revalidate(self.revalidate)
        if self.expires is not None:
            if isinstance(self.expires, bool) or not isinstance(self.expires, int):
                raise InvalidOptionsError(f"expires must be an integer, got {self.expires!r}")
            if self.expires <= 0:
                raise InvalidOptionsError(f"expires must be positive, got {self.expires}")
        self.tags = [str(tag) for tag in self.tags]


def check_revalidate(value: object) -> None:
    """Reject anything outside ``None | False | int >= 0``.

    ``True`` is refused explicitly: it is an ``int`` to Python but carries
    no meaning as a revalidation window.
    """
    if value is None or value is False:
        return
    if value is True or not isinstance(value, int):
        raise InvalidOptionsError(
            f"revalidate must be false, 0 or a number of seconds, got {value!r}"
        )
    if value < 0:
        raise InvalidOptionsError(f"revalidate must not be negative, got {value}")


class TransportOptions(BaseModel):
    """Fetch-style request options that take part in the cache key.

    Defaults match those of a freshly constructed fetch ``Request`` so keys
    stay stable whether or not a caller spells them out.  ``cache`` is
    overwritten by the fetcher from :attr:`FetchOptions.cache`.
    """

    mode: str = "cors"
    redirect: str = "follow"
    credentials: str = "same-origin"
    referrer: str = "about:client"
    referrer_policy: str = ""
    integrity: str = ""
    cache: str = "default"

    @property
    def follow_redirects(self) -> bool:
        """Whether the transport should follow redirects for this request."""
        return self.redirect == "follow"


# --- Stored records ---


class EntryBody(BaseModel):
    """Canonical stored payload: UTF-8 text, or base64 when ``is_binary``."""

    data: str
    is_binary: bool = False
    content_type: Optional[str] = None


class CacheEntry(BaseModel):
    """A persisted response.

    Entries are never mutated in place; a refresh replaces the whole
    record under the same key.  Header names are stored lower-cased.
    """

    body: EntryBody
    status_code: int
    status_text: str = ""
    headers: dict[str, str] = Field(default_factory=dict)
    stored_at: float
    revalidate_at: Optional[float] = None
    expires_at: Optional[float] = None
    tags: list[str] = Field(default_factory=list)

    @field_validator("headers")
    @classmethod
    def _lower_header_names(cls, value: dict[str, str]) -> dict[str, str]:
        return {name.lower(): v for name, v in value.items()}
