from __future__ import annotations

import re
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_RESPONSE_CACHE_TTL_MS = 300_000
DEFAULT_ERROR_CACHE_TTL_MS = 5_000
DEFAULT_UNCONFIGURED_CACHE_TTL_MS = 60_000


class BeszelSettings(BaseModel):
    base_url: str = "http://127.0.0.1:8090"
    system_name: str | None = None
    pb_email: str | None = None
    pb_password: str | None = None
    pb_auth_path: str = "api/collections/users/auth-with-password"

    def has_credentials(self) -> bool:
        return bool(self.pb_email and self.pb_password)


class SpotifySettings(BaseModel):
    client_id: str | None = None
    client_secret: str | None = None
    refresh_token: str | None = None
    token_store_path: Path = Path(".spotify/refresh-token.json")
    response_cache_ttl_ms: int = DEFAULT_RESPONSE_CACHE_TTL_MS
    response_error_cache_ttl_ms: int = DEFAULT_ERROR_CACHE_TTL_MS
    unconfigured_cache_ttl_ms: int = DEFAULT_UNCONFIGURED_CACHE_TTL_MS

    def has_client_credentials(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def resolved_token_store_path(self) -> Path:
        path = self.token_store_path.expanduser()
        return path if path.is_absolute() else Path.cwd() / path


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_ignore_empty=True,
        extra="ignore",
    )

    log_level: str = "INFO"
    http_timeout_seconds: float = 5.0

    # Beszel settings (flat env vars with prefix)
    beszel_base_url: str = "http://127.0.0.1:8090"
    beszel_system_name: str | None = None
    beszel_pb_email: str | None = None
    beszel_pb_password: str | None = None
    beszel_pb_auth_path: str = "api/collections/users/auth-with-password"

    # Spotify settings (flat env vars with prefix)
    spotify_client_id: str | None = None
    spotify_client_secret: str | None = None
    spotify_refresh_token: str | None = None
    spotify_token_store_path: Path = Path(".spotify/refresh-token.json")
    spotify_response_cache_ttl_ms: int = DEFAULT_RESPONSE_CACHE_TTL_MS
    spotify_response_error_cache_ttl_ms: int = DEFAULT_ERROR_CACHE_TTL_MS
    spotify_unconfigured_cache_ttl_ms: int = DEFAULT_UNCONFIGURED_CACHE_TTL_MS

    @field_validator(
        "spotify_response_cache_ttl_ms",
        "spotify_response_error_cache_ttl_ms",
        "spotify_unconfigured_cache_ttl_ms",
        mode="before",
    )
    @classmethod
    def lenient_ttl(cls, value: Any, info: ValidationInfo) -> Any:
        # "1500ms" reads as 1500; text without a leading integer keeps the default
        if not isinstance(value, str):
            return value
        match = re.match(r"\s*[+-]?\d+", value)
        if match is None:
            return cls.model_fields[info.field_name].default
        return int(match.group())

    def beszel(self) -> BeszelSettings:
        return BeszelSettings(
            base_url=self.beszel_base_url,
            system_name=self.beszel_system_name,
            pb_email=self.beszel_pb_email,
            pb_password=self.beszel_pb_password,
            pb_auth_path=self.beszel_pb_auth_path,
        )

    def spotify(self) -> SpotifySettings:
        return SpotifySettings(
            client_id=self.spotify_client_id,
            client_secret=self.spotify_client_secret,
            refresh_token=self.spotify_refresh_token,
            token_store_path=self.spotify_token_store_path,
            response_cache_ttl_ms=self.spotify_response_cache_ttl_ms,
            response_error_cache_ttl_ms=self.spotify_response_error_cache_ttl_ms,
            unconfigured_cache_ttl_ms=self.spotify_unconfigured_cache_ttl_ms,
        )
