from __future__ import annotations

import pytest

from portfolio_api.settings import (
    DEFAULT_ERROR_CACHE_TTL_MS,
    DEFAULT_RESPONSE_CACHE_TTL_MS,
    DEFAULT_UNCONFIGURED_CACHE_TTL_MS,
    Settings,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("1500", 1500),
        ("1500ms", 1500),
        (" 42 ", 42),
        ("-1", -1),
        ("soon", DEFAULT_RESPONSE_CACHE_TTL_MS),
        ("ms", DEFAULT_RESPONSE_CACHE_TTL_MS),
    ],
)
def test_response_ttl_from_env_is_lenient(monkeypatch, raw, expected) -> None:
    monkeypatch.setenv("SPOTIFY_RESPONSE_CACHE_TTL_MS", raw)

    settings = Settings(_env_file=None)

    assert settings.spotify().response_cache_ttl_ms == expected


def test_unparsable_ttls_keep_their_own_defaults(monkeypatch) -> None:
    monkeypatch.setenv("SPOTIFY_RESPONSE_ERROR_CACHE_TTL_MS", "abc")
    monkeypatch.setenv("SPOTIFY_UNCONFIGURED_CACHE_TTL_MS", "n/a")

    spotify = Settings(_env_file=None).spotify()

    assert spotify.response_error_cache_ttl_ms == DEFAULT_ERROR_CACHE_TTL_MS
    assert spotify.unconfigured_cache_ttl_ms == DEFAULT_UNCONFIGURED_CACHE_TTL_MS


def test_grouped_views_carry_flat_fields(monkeypatch) -> None:
    monkeypatch.setenv("BESZEL_BASE_URL", "http://beszel.lan:8090")
    monkeypatch.setenv("BESZEL_PB_EMAIL", "me@example.com")
    monkeypatch.setenv("BESZEL_PB_PASSWORD", "pw")
    monkeypatch.setenv("SPOTIFY_CLIENT_ID", "id")
    monkeypatch.delenv("SPOTIFY_CLIENT_SECRET", raising=False)

    settings = Settings(_env_file=None)

    assert settings.beszel().base_url == "http://beszel.lan:8090"
    assert settings.beszel().has_credentials()
    assert not settings.spotify().has_client_credentials()
