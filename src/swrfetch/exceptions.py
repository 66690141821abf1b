"""Exception hierarchy for swrfetch.

All exceptions inherit from :class:`SwrFetchError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`swrfetch.exit_codes`.
The command line entry point in :func:`swrfetch.app.main` catches
``SwrFetchError`` and exits with the appropriate code.

Only some of these ever reach a library caller.  Store failures and
malformed entries are recovered inside
:class:`~swrfetch.client.fetcher.CachedFetcher` and only logged; transport
failures are never wrapped and surface as the original :mod:`httpx`
exceptions.

Subclass hierarchy::

    SwrFetchError (exit 1)
    +-- ConfigError              (exit 1)
    +-- InvalidOptionsError      (exit 2)
    +-- BodyReadError            (exit 2)
    +-- MalformedEntryError      (exit 1)
    +-- HashingUnavailableError  (exit 7)
"""

from swrfetch.exit_codes import (
    EXIT_ENVIRONMENT_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
)


class SwrFetchError(Exception):
    """Base exception for all swrfetch errors.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigError(SwrFetchError):
    """Raised for configuration problems (invalid JSON, bad values, unreadable files)."""

    exit_code = EXIT_GENERIC_FAILURE


class InvalidOptionsError(SwrFetchError):
    """Raised when per-request cache options are invalid (e.g. ``revalidate=True``)."""

    exit_code = EXIT_INVALID_USAGE


class BodyReadError(SwrFetchError):
    """Raised when a single-use streaming request body fails while being drained.

    The stream is partially consumed at that point and cannot be replayed
    to the origin, so the error is surfaced instead of falling back to a
    direct fetch.
    """

    exit_code = EXIT_INVALID_USAGE


class MalformedEntryError(SwrFetchError):
    """Raised when a stored record does not have the shape of a cache entry.

    Never escapes the fetcher; a malformed record is treated as a miss.
    """

    exit_code = EXIT_GENERIC_FAILURE


class HashingUnavailableError(SwrFetchError):
    """Raised at start-up when :mod:`hashlib` cannot provide SHA-256."""

    exit_code = EXIT_ENVIRONMENT_ERROR
