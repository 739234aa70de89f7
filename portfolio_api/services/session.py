from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal

from portfolio_api.errors import ConfigurationMissing, PersistenceFailure, ProxyError
from portfolio_api.services.spotify_client import SpotifyClient
from portfolio_api.services.token_store import TokenStore
from portfolio_api.services.tracks import clean_string


@dataclass(frozen=True)
class TokenCandidate:
    source: Literal["stored", "env"]
    value: str


def token_candidates(stored: str | None, configured: str | None) -> list[TokenCandidate]:
    candidates: list[TokenCandidate] = []
    if stored:
        candidates.append(TokenCandidate(source="stored", value=stored))
    if configured and configured != stored:
        candidates.append(TokenCandidate(source="env", value=configured))
    return candidates


class SessionResolver:
    """Turns a refresh token into an access token, keeping the token store current."""

    def __init__(self, client: SpotifyClient, store: TokenStore, configured_refresh_token: str | None) -> None:
        self._client = client
        self._store = store
        self._configured_refresh_token = configured_refresh_token

    async def resolve(self, log: logging.Logger | logging.LoggerAdapter) -> str:
        stored = await self._store.read(log)
        configured = clean_string(self._configured_refresh_token)
        candidates = token_candidates(stored, configured)
        log.info(
            "Resolved refresh token candidates has_stored=%s has_env=%s count=%d",
            bool(stored),
            bool(configured),
            len(candidates),
        )
        if not candidates:
            raise ConfigurationMissing("Missing Spotify refresh token")

        last_error: ProxyError | None = None
        for index, candidate in enumerate(candidates, start=1):
            log.info("Trying refresh token candidate %d/%d source=%s", index, len(candidates), candidate.source)
            try:
                grant = await self._client.request_access_token(candidate.value, log)
            except ProxyError as exc:
                log.warning("Refresh token candidate failed source=%s: %s", candidate.source, exc)
                last_error = exc
                continue

            log.info(
                "Refresh token candidate succeeded source=%s rotated=%s",
                candidate.source,
                bool(grant.rotated_refresh_token),
            )
            latest = grant.rotated_refresh_token or candidate.value
            if latest != stored:
                try:
                    await self._store.write(latest, log)
                except PersistenceFailure as exc:
                    # the access token is still good for this cycle
                    log.error("Failed to persist rotated Spotify refresh token: %s", exc)
            return grant.access_token

        if last_error is None:
            raise ConfigurationMissing("Missing Spotify refresh token")
        raise last_error
