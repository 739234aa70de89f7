from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from portfolio_api.settings import Settings


@pytest.fixture
def test_log() -> logging.Logger:
    return logging.getLogger("tests")


@pytest.fixture
def store_path(tmp_path: Path) -> Path:
    return tmp_path / "store" / "refresh-token.json"


@pytest.fixture
def make_settings(store_path: Path) -> Callable[..., Settings]:
    def factory(**overrides: Any) -> Settings:
        values: dict[str, Any] = {
            "beszel_base_url": "http://beszel.test",
            "spotify_client_id": "client-id",
            "spotify_client_secret": "client-secret",
            "spotify_refresh_token": "env-token",
            "spotify_token_store_path": store_path,
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return factory
