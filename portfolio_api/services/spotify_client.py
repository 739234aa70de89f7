from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from portfolio_api.errors import ConfigurationMissing, UpstreamAuthFailure, UpstreamRequestFailure, UpstreamTimeout
from portfolio_api.services.tracks import clean_string
from portfolio_api.settings import SpotifySettings

TOKEN_ENDPOINT = "https://accounts.spotify.com/api/token"
CURRENTLY_PLAYING_ENDPOINT = "https://api.spotify.com/v1/me/player/currently-playing"
RECENTLY_PLAYED_ENDPOINT = "https://api.spotify.com/v1/me/player/recently-played?limit=1"

RESPONSE_SNIPPET_MAX_LENGTH = 400


@dataclass(frozen=True)
class AccessGrant:
    access_token: str
    rotated_refresh_token: str | None


def response_snippet(resp: httpx.Response) -> str | None:
    try:
        body = resp.text.strip()
    except (UnicodeDecodeError, httpx.ResponseNotRead):
        return None
    if not body:
        return None
    if len(body) <= RESPONSE_SNIPPET_MAX_LENGTH:
        return body
    return f"{body[:RESPONSE_SNIPPET_MAX_LENGTH]}..."


class SpotifyClient:
    def __init__(self, http: httpx.AsyncClient, settings: SpotifySettings) -> None:
        self._http = http
        self._settings = settings

    async def request_access_token(
        self, refresh_token: str, log: logging.Logger | logging.LoggerAdapter
    ) -> AccessGrant:
        if not self._settings.has_client_credentials():
            raise ConfigurationMissing("Missing Spotify client credentials")

        log.info("Requesting access token from Spotify")
        try:
            resp = await self._http.post(
                TOKEN_ENDPOINT,
                auth=(self._settings.client_id or "", self._settings.client_secret or ""),
                data={"grant_type": "refresh_token", "refresh_token": refresh_token},
            )
        except httpx.TimeoutException as exc:
            raise UpstreamTimeout("Spotify token request timed out") from exc
        except httpx.HTTPError as exc:
            raise UpstreamAuthFailure(f"Spotify token request failed: {exc}") from exc

        if resp.status_code >= 400:
            snippet = response_snippet(resp)
            log.warning("Spotify token request failed status=%s body=%s", resp.status_code, snippet)
            message = f"Spotify token request failed with status {resp.status_code}"
            raise UpstreamAuthFailure(f"{message}: {snippet}" if snippet else message, status=resp.status_code)

        try:
            data = resp.json()
        except ValueError as exc:
            raise UpstreamAuthFailure("Spotify token response was not JSON") from exc
        if not isinstance(data, dict):
            data = {}

        access_token = clean_string(data.get("access_token"))
        if access_token is None:
            log.warning("Spotify token response missing access_token")
            raise UpstreamAuthFailure("Spotify token response did not include access_token")

        rotated = clean_string(data.get("refresh_token"))
        log.info("Spotify token request succeeded has_rotated_refresh_token=%s", bool(rotated))
        return AccessGrant(access_token=access_token, rotated_refresh_token=rotated)

    async def get(self, url: str, access_token: str) -> httpx.Response:
        try:
            return await self._http.get(url, headers={"Authorization": f"Bearer {access_token}"})
        except httpx.TimeoutException as exc:
            raise UpstreamTimeout(f"Spotify request timed out: {url}") from exc
        except httpx.HTTPError as exc:
            raise UpstreamRequestFailure(f"Spotify request failed: {exc}") from exc

    async def currently_playing(self, access_token: str) -> httpx.Response:
        return await self.get(CURRENTLY_PLAYING_ENDPOINT, access_token)

    async def recently_played(self, access_token: str) -> httpx.Response:
        return await self.get(RECENTLY_PLAYED_ENDPOINT, access_token)
