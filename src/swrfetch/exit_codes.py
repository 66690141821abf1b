"""Numeric process exit codes for the ``swrfetch`` command line.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~swrfetch.exceptions.SwrFetchError` subclass.
Shell wrappers can inspect the exit code to tell a bad flag apart from an
unreachable origin without parsing stderr.

Example::

    $ swrfetch fetch https://unreachable.invalid/
    $ echo $?
    6   # EXIT_CONNECTION_ERROR -- the origin could not be reached
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or request options."""

EXIT_HTTP_ERROR = 5
"""The origin answered with a non-2xx status code."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_ENVIRONMENT_ERROR = 7
"""The runtime lacks a required primitive (e.g. SHA-256 in :mod:`hashlib`)."""
