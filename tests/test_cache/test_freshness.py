"""Tests for the freshness policy."""

from __future__ import annotations

import pytest

from swrfetch.cache.freshness import (
    NEVER_REVALIDATE_LIFETIME,
    ONE_DAY,
    Deadlines,
    classify,
    compute_deadlines,
    disables_caching,
    store_ttl,
)
from swrfetch.exceptions import InvalidOptionsError
from swrfetch.models import CacheEntry, EntryBody, Freshness

NOW = 1_000_000.0


def _entry(revalidate_at=None, expires_at=None) -> CacheEntry:
    return CacheEntry(
        body=EntryBody(data="x"),
        status_code=200,
        stored_at=NOW,
        revalidate_at=revalidate_at,
        expires_at=expires_at,
    )


class TestDisablesCaching:
    def test_zero(self):
        assert disables_caching(0) is True

    @pytest.mark.parametrize("value", [False, None, 1, 3600])
    def test_others(self, value):
        assert disables_caching(value) is False


class TestComputeDeadlines:
    def test_never_revalidate(self):
        d = compute_deadlines(False, None, NOW)
        assert d == Deadlines(revalidate_at=None, expires_at=NOW + NEVER_REVALIDATE_LIFETIME)

    def test_none_behaves_like_false(self):
        assert compute_deadlines(None, None, NOW) == compute_deadlines(False, None, NOW)

    def test_never_revalidate_with_explicit_expires(self):
        d = compute_deadlines(False, 120, NOW)
        assert d.revalidate_at is None
        assert d.expires_at == NOW + 120

    def test_short_window_gets_one_day(self):
        d = compute_deadlines(60, None, NOW)
        assert d.revalidate_at == NOW + 60
        assert d.expires_at == NOW + ONE_DAY

    def test_long_window_gets_ten_times(self):
        d = compute_deadlines(20000, None, NOW)
        assert d.revalidate_at == NOW + 20000
        assert d.expires_at == NOW + 200000

    def test_expires_longer_than_revalidate_wins(self):
        d = compute_deadlines(60, 600, NOW)
        assert d.expires_at == NOW + 600

    def test_expires_not_longer_than_revalidate_ignored(self):
        d = compute_deadlines(600, 600, NOW)
        assert d.expires_at == NOW + ONE_DAY

    def test_zero_rejected(self):
        with pytest.raises(InvalidOptionsError):
            compute_deadlines(0, None, NOW)

    @pytest.mark.parametrize("value", [True, -1, "60", 1.5])
    def test_invalid_rejected(self, value):
        with pytest.raises(InvalidOptionsError):
            compute_deadlines(value, None, NOW)


class TestClassify:
    def test_absent(self):
        assert classify(None, NOW) is Freshness.ABSENT

    def test_fresh_without_deadlines(self):
        assert classify(_entry(), NOW + 10**9) is Freshness.FRESH

    def test_fresh_before_revalidate_at(self):
        assert classify(_entry(NOW + 60, NOW + 600), NOW + 60) is Freshness.FRESH

    def test_stale_after_revalidate_at(self):
        assert classify(_entry(NOW + 60, NOW + 600), NOW + 61) is Freshness.STALE

    def test_expired_after_expires_at(self):
        assert classify(_entry(NOW + 60, NOW + 600), NOW + 601) is Freshness.EXPIRED

    def test_expired_checked_before_stale(self):
        assert classify(_entry(NOW + 600, NOW + 60), NOW + 100) is Freshness.EXPIRED


class TestStoreTtl:
    def test_no_expiry_uses_default(self):
        assert store_ttl(None, NOW) == ONE_DAY
        assert store_ttl(None, NOW, default=30) == 30

    def test_rounds_up(self):
        assert store_ttl(NOW + 100.2, NOW) == 101

    def test_floor(self):
        assert store_ttl(NOW + 5, NOW) == 60
        assert store_ttl(NOW - 5, NOW) == 60
        assert store_ttl(NOW + 5, NOW, minimum=1) == 5
