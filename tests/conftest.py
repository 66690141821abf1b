"""Shared test fixtures for swrfetch.

Provides a controllable clock, an in-memory store, a scripted origin built
on :class:`httpx.MockTransport`, and a fetcher wired to all three.  These
fixtures are discovered by pytest and available to every test module.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Optional

import httpx
import pytest

from swrfetch.cache.store import MemoryStore
from swrfetch.client.fetcher import CachedFetcher
from swrfetch.client.scheduler import TaskScheduler
from swrfetch.output import reset_output

T0 = 1_700_000_000.0


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time; CliRunner swaps those streams per invocation.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Time
# ---------------------------------------------------------------------------


class FrozenClock:
    """A clock that only moves when told to."""

    def __init__(self, now: float = T0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------


class RecordingStore(MemoryStore):
    """MemoryStore that counts calls and remembers TTLs."""

    def __init__(self, clock: Callable[[], float]) -> None:
        super().__init__(clock)
        self.gets: list[str] = []
        self.sets: list[tuple[str, int]] = []

    async def get(self, key: str) -> Optional[Any]:
        self.gets.append(key)
        return await super().get(key)

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        self.sets.append((key, ttl_seconds))
        await super().set(key, value, ttl_seconds)


class FailingStore:
    """A store whose every call raises."""

    def __init__(self) -> None:
        self.gets = 0
        self.sets = 0

    async def get(self, key: str) -> Optional[Any]:
        self.gets += 1
        raise ConnectionError("store unavailable")

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        self.sets += 1
        raise ConnectionError("store unavailable")


@pytest.fixture
def store(clock: FrozenClock) -> RecordingStore:
    return RecordingStore(clock)


@pytest.fixture
def failing_store() -> FailingStore:
    return FailingStore()


# ---------------------------------------------------------------------------
# Origin
# ---------------------------------------------------------------------------


class Origin:
    """Scripted origin server for :class:`httpx.MockTransport`.

    Every request is recorded.  The handler answers with ``self.status``,
    ``self.content`` and ``self.headers`` unless ``self.handler`` is set.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.status = 200
        self.content: bytes = b'{"ok":true}'
        self.headers: dict[str, str] = {"content-type": "application/json"}
        self.handler: Optional[Callable[[httpx.Request], httpx.Response]] = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.handler is not None:
            return self.handler(request)
        return httpx.Response(self.status, headers=self.headers, content=self.content)

    @property
    def calls(self) -> int:
        return len(self.requests)


@pytest.fixture
def origin() -> Origin:
    return Origin()


@pytest.fixture
async def origin_client(origin: Origin):
    """An AsyncClient whose transport is the scripted origin."""
    client = httpx.AsyncClient(transport=httpx.MockTransport(origin))
    yield client
    await client.aclose()


@pytest.fixture
async def fetcher(store: RecordingStore, origin_client: httpx.AsyncClient, clock: FrozenClock):
    """A CachedFetcher wired to the recording store, scripted origin and frozen clock."""
    f = CachedFetcher(store, origin_client, scheduler=TaskScheduler(), clock=clock)
    yield f
    await f.aclose()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration and cache directories to tmp_path.

    Sets XDG_CONFIG_HOME and XDG_CACHE_HOME under tmp_path, forces the
    XDG code path, and clears all SWRFETCH_* environment variables.
    """
    monkeypatch.setattr("swrfetch.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    for var in ["SWRFETCH_KEY_PREFIX", "SWRFETCH_CACHE_DIR", "SWRFETCH_DISABLED"]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path
