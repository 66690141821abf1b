"""Typer application and CLI entry point for swrfetch.

The command line is a thin shell over :class:`~swrfetch.client.CachedFetcher`
backed by a :class:`~swrfetch.cache.DiskStore`, handy for inspecting what
a request would hash to and how its entry ages::

    swrfetch fetch https://api.example.com/products --revalidate 1800
    swrfetch cache stats
    swrfetch cache clear

:func:`main` is the console-script entry point declared in
``pyproject.toml``.  :class:`~swrfetch.exceptions.SwrFetchError` and
transport failures are reported on stderr and mapped to the exit codes in
:mod:`swrfetch.exit_codes`.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import TYPE_CHECKING, Optional, Union

import httpx
import typer
from rich.console import Console
from rich.logging import RichHandler

from swrfetch import __version__
from swrfetch.exit_codes import EXIT_CONNECTION_ERROR, EXIT_HTTP_ERROR

if TYPE_CHECKING:
    from swrfetch.models import CacheConfig, FetchOptions

app = typer.Typer(
    name="swrfetch",
    help="Stale-while-revalidate caching in front of HTTP fetches.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)
cache_app = typer.Typer(help="Inspect or clear the disk store.", no_args_is_help=True)
app.add_typer(cache_app, name="cache")


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"swrfetch {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress non-essential output."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output."),
) -> None:
    """Initialise output and logging before every sub-command."""
    from swrfetch.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    output = OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose)
    set_output(output)
    _configure_logging(output.stderr_console if not no_color else None, verbose)


def _configure_logging(console: Optional[Console], verbose: bool) -> None:
    handler: logging.Handler
    if console is not None:
        handler = RichHandler(console=console, show_path=False, show_time=False)
    else:
        handler = logging.StreamHandler(sys.stderr)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s" if console is not None else "%(levelname)s %(name)s: %(message)s",
        handlers=[handler],
        force=True,
    )


def parse_revalidate(value: Optional[str]) -> Union[bool, int, None]:
    """``"false"`` -> ``False``, ``"60"`` -> ``60``, ``None`` -> ``None``."""
    if value is None:
        return None
    if value.strip().lower() == "false":
        return False
    try:
        return int(value)
    except ValueError:
        raise typer.BadParameter("expected 'false' or a number of seconds", param_hint="--revalidate")


def parse_header(raw: str) -> tuple[str, str]:
    """``"Accept: application/json"`` -> ``("Accept", "application/json")``."""
    name, sep, value = raw.partition(":")
    if not sep or not name.strip():
        raise typer.BadParameter(f"expected 'Name: value', got {raw!r}", param_hint="--header")
    return name.strip(), value.strip()


@app.command("fetch")
def fetch_command(
    url: str = typer.Argument(..., help="Absolute URL to fetch."),
    method: str = typer.Option("GET", "--method", "-X", help="HTTP method."),
    header: Optional[list[str]] = typer.Option(
        None, "--header", "-H", help="Request header as 'Name: value' (repeatable)."
    ),
    data: Optional[str] = typer.Option(None, "--data", "-d", help="Request body text."),
    revalidate: Optional[str] = typer.Option(
        None, "--revalidate", help="Seconds until stale, 'false' to never revalidate, 0 to skip caching."
    ),
    expires: Optional[int] = typer.Option(None, "--expires", help="Absolute lifetime in seconds."),
    prefix: Optional[str] = typer.Option(None, "--prefix", help="Cache key namespace."),
    tag: Optional[list[str]] = typer.Option(None, "--tag", help="Tag stored with the entry (repeatable)."),
    bypass: bool = typer.Option(False, "--bypass", help="Skip the cache entirely."),
    cache_dir: Optional[str] = typer.Option(None, "--cache-dir", help="Disk store directory."),
) -> None:
    """Fetch URL through the cache and print the body to stdout."""
    from swrfetch.client.response import format_api_response
    from swrfetch.config import resolve_config
    from swrfetch.models import CacheMode, FetchOptions

    config = resolve_config(cli_cache_dir=cache_dir, cli_key_prefix=prefix)
    options = FetchOptions(
        cache=CacheMode.BYPASS if bypass else CacheMode.AUTO,
        revalidate=parse_revalidate(revalidate),
        expires=expires,
        tags=list(tag or []),
    )
    headers = [parse_header(h) for h in header or []]

    response = asyncio.run(_fetch(url, method, headers, data, options, config))
    format_api_response(response)
    if not response.is_success:
        raise typer.Exit(EXIT_HTTP_ERROR)


async def _fetch(
    url: str,
    method: str,
    headers: list[tuple[str, str]],
    data: Optional[str],
    options: FetchOptions,
    config: CacheConfig,
) -> httpx.Response:
    from swrfetch.cache.store import DiskStore
    from swrfetch.client.fetcher import CachedFetcher

    store = DiskStore(config.cache_dir)
    try:
        async with CachedFetcher(store, config=config) as fetcher:
            return await fetcher.fetch(
                url, method=method, headers=headers, body=data, options=options
            )
    finally:
        store.close()


@cache_app.command("stats")
def cache_stats(
    cache_dir: Optional[str] = typer.Option(None, "--cache-dir", help="Disk store directory."),
) -> None:
    """Show the number of stored entries and where they live."""
    from swrfetch.cache.store import DiskStore
    from swrfetch.config import resolve_config
    from swrfetch.output import get_output

    config = resolve_config(cli_cache_dir=cache_dir)
    store = DiskStore(config.cache_dir)
    try:
        stats = store.stats()
    finally:
        store.close()
    get_output().print_table(
        ["entries", "directory"],
        [[str(stats["size"]), stats["directory"]]],
        title="swrfetch cache",
    )


@cache_app.command("clear")
def cache_clear(
    cache_dir: Optional[str] = typer.Option(None, "--cache-dir", help="Disk store directory."),
) -> None:
    """Remove every stored entry."""
    from swrfetch.cache.store import DiskStore
    from swrfetch.config import resolve_config
    from swrfetch.output import success

    config = resolve_config(cli_cache_dir=cache_dir)
    store = DiskStore(config.cache_dir)
    try:
        store.clear()
    finally:
        store.close()
    success("Cache cleared.")


def main() -> None:
    """CLI entry point invoked by the ``swrfetch`` console script.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except httpx.HTTPError as exc:
        from swrfetch.output import error

        error(f"Request failed: {exc}")
        sys.exit(EXIT_CONNECTION_ERROR)
    except Exception as exc:
        from swrfetch.exceptions import SwrFetchError
        from swrfetch.output import error

        if isinstance(exc, SwrFetchError):
            error(str(exc))
            sys.exit(exc.exit_code)
        raise


if __name__ == "__main__":  # pragma: no cover
    main()
