"""Tests for the shared models and option validation."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from swrfetch.exceptions import InvalidOptionsError
from swrfetch.models import (
    CacheConfig,
    CacheEntry,
    CacheMode,
    EntryBody,
    FetchOptions,
    TransportOptions,
    check_revalidate,
)


class TestCacheMode:
    @pytest.mark.parametrize(
        "mode, expected",
        [
            (CacheMode.BYPASS, "no-store"),
            (CacheMode.FORCE_CHECK, "force-cache"),
            (CacheMode.AUTO, "default"),
        ],
    )
    def test_request_cache(self, mode, expected):
        assert mode.request_cache == expected

    def test_from_string(self):
        assert CacheMode("force-check-then-fetch") is CacheMode.FORCE_CHECK


class TestCheckRevalidate:
    @pytest.mark.parametrize("value", [None, False, 0, 1, 3600])
    def test_valid(self, value):
        check_revalidate(value)

    @pytest.mark.parametrize("value", [True, -1, 1.5, "60"])
    def test_invalid(self, value):
        with pytest.raises(InvalidOptionsError):
            check_revalidate(value)


class TestFetchOptions:
    def test_defaults(self):
        options = FetchOptions()
        assert options.cache is CacheMode.AUTO
        assert options.revalidate is None
        assert options.expires is None
        assert options.tags == []
        assert options.key_prefix is None

    def test_string_mode_coerced(self):
        assert FetchOptions(cache="bypass").cache is CacheMode.BYPASS

    def test_unknown_mode_rejected(self):
        with pytest.raises(ValueError):
            FetchOptions(cache="sometimes")

    def test_revalidate_true_rejected(self):
        with pytest.raises(InvalidOptionsError):
            FetchOptions(revalidate=True)

    @pytest.mark.parametrize("expires", [0, -5, True, 1.5])
    def test_bad_expires_rejected(self, expires):
        with pytest.raises(InvalidOptionsError):
            FetchOptions(expires=expires)

    def test_tags_stringified(self):
        assert FetchOptions(tags=["a", 1]).tags == ["a", "1"]


class TestCacheConfig:
    def test_defaults(self):
        config = CacheConfig()
        assert config.enabled is True
        assert config.min_store_ttl == 60
        assert config.default_store_ttl == 86400
        assert config.cache_dir is None

    def test_negative_revalidate_rejected(self):
        with pytest.raises(ValidationError):
            CacheConfig(default_revalidate=-1)

    def test_zero_ttl_rejected(self):
        with pytest.raises(ValidationError):
            CacheConfig(default_store_ttl=0)


class TestTransportOptions:
    def test_defaults(self):
        t = TransportOptions()
        assert (t.mode, t.redirect, t.credentials, t.referrer) == (
            "cors",
            "follow",
            "same-origin",
            "about:client",
        )
        assert t.follow_redirects is True

    @pytest.mark.parametrize("redirect", ["manual", "error"])
    def test_no_follow(self, redirect):
        assert TransportOptions(redirect=redirect).follow_redirects is False


class TestCacheEntry:
    def test_header_names_lowercased(self):
        entry = CacheEntry(
            body=EntryBody(data="x"),
            status_code=200,
            headers={"Content-Type": "text/plain", "ETag": "v"},
            stored_at=0,
        )
        assert entry.headers == {"content-type": "text/plain", "etag": "v"}
