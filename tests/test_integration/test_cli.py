"""Integration tests for the ``swrfetch`` command line.

The origin is an :class:`httpx.MockTransport` patched into every
:class:`httpx.AsyncClient` the fetch command creates, and the disk store
lives under ``tmp_path``, so each test runs the full CLI -> fetcher ->
DiskStore path without touching the network.
"""

from __future__ import annotations

from pathlib import Path

import httpx
import pytest
import typer
from typer.testing import CliRunner

from swrfetch import __version__
from swrfetch.app import app, parse_header, parse_revalidate

URL = "https://api.example.com/products"


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def origin_log(monkeypatch: pytest.MonkeyPatch) -> list[httpx.Request]:
    """Route every AsyncClient through a mock origin and record its requests."""
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.path == "/broken":
            return httpx.Response(500, text="boom")
        return httpx.Response(200, json={"items": ["widget"]})

    real_client = httpx.AsyncClient

    def _client(*args, **kwargs):
        kwargs["transport"] = httpx.MockTransport(handler)
        return real_client(*args, **kwargs)

    monkeypatch.setattr(httpx, "AsyncClient", _client)
    return seen


def _fetch(runner: CliRunner, cache_dir: Path, *args: str):
    return runner.invoke(app, ["--plain", "fetch", *args, "--cache-dir", str(cache_dir)])


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


class TestParsers:
    @pytest.mark.parametrize(
        "raw, expected",
        [(None, None), ("false", False), ("FALSE", False), ("0", 0), ("60", 60)],
    )
    def test_parse_revalidate(self, raw, expected):
        assert parse_revalidate(raw) == expected
        assert type(parse_revalidate(raw)) is type(expected)

    def test_parse_revalidate_rejects_garbage(self):
        with pytest.raises(typer.BadParameter):
            parse_revalidate("soon")

    def test_parse_header(self):
        assert parse_header("Accept:  application/json ") == ("Accept", "application/json")
        assert parse_header("X-Empty:") == ("X-Empty", "")

    @pytest.mark.parametrize("raw", ["no-colon", ": value"])
    def test_parse_header_rejects(self, raw):
        with pytest.raises(typer.BadParameter):
            parse_header(raw)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


class TestVersion:
    def test_version(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"swrfetch {__version__}" in result.output


class TestFetchCommand:
    def test_miss_then_hit(
        self, runner: CliRunner, isolated_config: Path, origin_log: list[httpx.Request]
    ) -> None:
        cache_dir = isolated_config / "store"

        first = _fetch(runner, cache_dir, URL, "--revalidate", "300")
        assert first.exit_code == 0, first.output
        assert "widget" in first.output
        assert "cache: MISS" in first.output

        second = _fetch(runner, cache_dir, URL, "--revalidate", "300")
        assert second.exit_code == 0, second.output
        assert "cache: HIT" in second.output
        assert "widget" in second.output
        assert len(origin_log) == 1

    def test_bypass_never_stores(
        self, runner: CliRunner, isolated_config: Path, origin_log: list[httpx.Request]
    ) -> None:
        cache_dir = isolated_config / "store"
        _fetch(runner, cache_dir, URL, "--bypass")
        result = _fetch(runner, cache_dir, URL, "--bypass")

        assert "cache: MISS" in result.output
        assert len(origin_log) == 2

    def test_headers_and_body_forwarded(
        self, runner: CliRunner, isolated_config: Path, origin_log: list[httpx.Request]
    ) -> None:
        result = _fetch(
            runner,
            isolated_config / "store",
            URL,
            "-X",
            "POST",
            "-H",
            "Accept: application/json",
            "-d",
            '{"q":"widget"}',
        )
        assert result.exit_code == 0, result.output

        request = origin_log[0]
        assert request.method == "POST"
        assert request.headers["accept"] == "application/json"
        assert request.content == b'{"q":"widget"}'

    def test_http_error_exit_code(
        self, runner: CliRunner, isolated_config: Path, origin_log: list[httpx.Request]
    ) -> None:
        result = _fetch(runner, isolated_config / "store", "https://api.example.com/broken")
        assert result.exit_code == 5
        assert "HTTP 500" in result.output

    def test_invalid_revalidate(self, runner: CliRunner, isolated_config: Path) -> None:
        result = _fetch(runner, isolated_config / "store", URL, "--revalidate", "later")
        assert result.exit_code == 2


class TestCacheCommands:
    def test_stats_and_clear(
        self, runner: CliRunner, isolated_config: Path, origin_log: list[httpx.Request]
    ) -> None:
        cache_dir = isolated_config / "store"
        _fetch(runner, cache_dir, URL)

        stats = runner.invoke(app, ["--plain", "cache", "stats", "--cache-dir", str(cache_dir)])
        assert stats.exit_code == 0, stats.output
        assert "entries\tdirectory" in stats.output
        assert f"1\t{cache_dir / 'responses'}" in stats.output

        cleared = runner.invoke(app, ["--plain", "cache", "clear", "--cache-dir", str(cache_dir)])
        assert cleared.exit_code == 0
        assert "Cache cleared." in cleared.output

        stats = runner.invoke(app, ["--json", "cache", "stats", "--cache-dir", str(cache_dir)])
        assert '"entries": "0"' in stats.output

    def test_stats_uses_env_cache_dir(
        self, runner: CliRunner, isolated_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        target = isolated_config / "from-env"
        monkeypatch.setenv("SWRFETCH_CACHE_DIR", str(target))

        result = runner.invoke(app, ["--plain", "cache", "stats"])
        assert result.exit_code == 0, result.output
        assert str(target / "responses") in result.output
