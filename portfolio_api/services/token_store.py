from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path

import aiofiles
import aiofiles.os

from portfolio_api.errors import PersistenceFailure
from portfolio_api.models.now_playing import TokenStoreRecord
from portfolio_api.services.tracks import clean_string


def _owner_only(path: str, flags: int) -> int:
    return os.open(path, flags, 0o600)


class TokenStore:
    """Single-record JSON file holding the latest Spotify refresh token.

    Writes go to ``<path>.tmp`` first and are then renamed over the store, so a
    reader never sees a half-written file and an interrupted write leaves the
    previous record in place.
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    @property
    def temp_path(self) -> Path:
        return self.path.with_name(f"{self.path.name}.tmp")

    async def read(self, log: logging.Logger | logging.LoggerAdapter) -> str | None:
        try:
            async with aiofiles.open(self.path, "r", encoding="utf-8") as f:
                raw = await f.read()
        except FileNotFoundError:
            log.info("Token store file not found; using env token if available path=%s", self.path)
            return None
        except (OSError, UnicodeDecodeError) as exc:
            log.warning("Failed to read token store; using env token if available: %s", exc)
            return None

        try:
            data = json.loads(raw)
        except ValueError as exc:
            log.warning("Token store is not valid JSON; using env token if available: %s", exc)
            return None

        token = clean_string(data.get("refreshToken")) if isinstance(data, dict) else None
        log.info("Loaded refresh token from token store path=%s has_refresh_token=%s", self.path, bool(token))
        return token

    async def write(self, refresh_token: str, log: logging.Logger | logging.LoggerAdapter) -> None:
        token = clean_string(refresh_token)
        if token is None:
            return

        record = TokenStoreRecord(
            refresh_token=token,
            updated_at=datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
        )
        body = json.dumps(record.model_dump(by_alias=True), indent=2) + "\n"

        try:
            await aiofiles.os.makedirs(self.path.parent, exist_ok=True)
            async with aiofiles.open(self.temp_path, "w", encoding="utf-8", opener=_owner_only) as f:
                await f.write(body)
            await aiofiles.os.replace(self.temp_path, self.path)
        except OSError as exc:
            raise PersistenceFailure(f"Failed to write token store {self.path}: {exc}") from exc

        log.info("Persisted refresh token to token store path=%s", self.path)
