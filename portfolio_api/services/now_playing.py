from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

import httpx

from portfolio_api.errors import UpstreamRequestFailure
from portfolio_api.logs import SPOTIFY_LOGGER, RequestLogger, make_request_id
from portfolio_api.models.now_playing import CachedResult, EndpointResult, NowPlayingPayload
from portfolio_api.services.session import SessionResolver
from portfolio_api.services.spotify_client import SpotifyClient, response_snippet
from portfolio_api.services.token_store import TokenStore
from portfolio_api.services.tracks import parse_track
from portfolio_api.settings import (
    DEFAULT_ERROR_CACHE_TTL_MS,
    DEFAULT_RESPONSE_CACHE_TTL_MS,
    DEFAULT_UNCONFIGURED_CACHE_TTL_MS,
    SpotifySettings,
)

log = logging.getLogger(SPOTIFY_LOGGER)

UNCONFIGURED_MESSAGE = "Spotify client credentials are not configured on the server."
UPSTREAM_ERROR_MESSAGE = "Unable to reach Spotify API."
UNEXPECTED_ERROR_MESSAGE = "Unexpected server error while loading Spotify state."


def effective_ttl(value: int | None, fallback: int) -> int:
    if value is None or value < 0:
        return fallback
    return value


class NowPlayingCache:
    """Single cache slot plus the marker for the fetch currently in flight."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._cached: CachedResult | None = None
        self._in_flight: asyncio.Task[EndpointResult] | None = None

    @property
    def in_flight(self) -> bool:
        return self._in_flight is not None

    def fresh(self) -> EndpointResult | None:
        cached = self._cached
        if cached is None or not cached.is_fresh(self._clock()):
            return None
        return cached.result

    def store(self, result: EndpointResult, ttl_ms: int) -> None:
        self._cached = CachedResult(result=result, expires_at=self._clock() + ttl_ms / 1000)

    async def get_or_fetch(
        self,
        fetch: Callable[[], Awaitable[EndpointResult]],
        ttl_ms: Callable[[EndpointResult], int],
        log: logging.Logger | logging.LoggerAdapter = log,
    ) -> EndpointResult:
        cached = self.fresh()
        if cached is not None:
            log.info(
                "Serving Spotify response from cache source=%s status=%d", cached.payload.source, cached.status
            )
            return cached

        if self._in_flight is None:
            self._in_flight = asyncio.ensure_future(self._run(fetch, ttl_ms, log))
        else:
            log.info("Waiting for in-flight Spotify request")

        # a cancelled caller must not cancel the fetch other callers are sharing
        return await asyncio.shield(self._in_flight)

    async def _run(
        self,
        fetch: Callable[[], Awaitable[EndpointResult]],
        ttl_ms: Callable[[EndpointResult], int],
        log: logging.Logger | logging.LoggerAdapter,
    ) -> EndpointResult:
        try:
            result = await fetch()
        finally:
            self._in_flight = None
        ttl = ttl_ms(result)
        self.store(result, ttl)
        log.info(
            "Cached fresh Spotify response source=%s status=%d ttl_ms=%d", result.payload.source, result.status, ttl
        )
        return result


class NowPlayingService:
    def __init__(
        self,
        http: httpx.AsyncClient,
        settings: SpotifySettings,
        *,
        cache: NowPlayingCache | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._settings = settings
        self._client = SpotifyClient(http, settings)
        self._sessions = SessionResolver(
            self._client,
            TokenStore(settings.resolved_token_store_path()),
            settings.refresh_token,
        )
        self.cache = cache or NowPlayingCache()
        self._logger = logger or log

    def cache_ttl_ms(self, result: EndpointResult) -> int:
        source = result.payload.source
        if source == "error":
            return effective_ttl(self._settings.response_error_cache_ttl_ms, DEFAULT_ERROR_CACHE_TTL_MS)
        if source == "unconfigured":
            return effective_ttl(self._settings.unconfigured_cache_ttl_ms, DEFAULT_UNCONFIGURED_CACHE_TTL_MS)
        return effective_ttl(self._settings.response_cache_ttl_ms, DEFAULT_RESPONSE_CACHE_TTL_MS)

    async def _lookup_playback(self, log: logging.Logger | logging.LoggerAdapter) -> NowPlayingPayload:
        access_token = await self._sessions.resolve(log)

        resp = await self._client.currently_playing(access_token)
        log.info("Received currently-playing response status=%d", resp.status_code)
        if resp.status_code == 200:
            data = resp.json()
            if not isinstance(data, dict):
                data = {}
            track = parse_track(data.get("item"))
            if track.title or track.artist:
                log.info(
                    "Returning currently playing track is_playing=%s has_title=%s has_artist=%s",
                    bool(data.get("is_playing")),
                    bool(track.title),
                    bool(track.artist),
                )
                return NowPlayingPayload.from_track(track, is_playing=bool(data.get("is_playing")))
            log.info("Currently-playing payload had no track metadata")
        elif resp.status_code != 204:
            log.warning(
                "Unexpected currently-playing response status=%d body=%s", resp.status_code, response_snippet(resp)
            )
            raise UpstreamRequestFailure(
                f"Spotify currently-playing request failed with status {resp.status_code}", status=resp.status_code
            )

        resp = await self._client.recently_played(access_token)
        log.info("Received recently-played response status=%d", resp.status_code)
        if resp.status_code == 200:
            data = resp.json()
            items = data.get("items") if isinstance(data, dict) else None
            item = items[0] if isinstance(items, list) and items and isinstance(items[0], dict) else {}
            track = parse_track(item.get("track"))
            played_at = item.get("played_at") if isinstance(item.get("played_at"), str) else None
            log.info(
                "Returning recently played track has_title=%s has_artist=%s has_played_at=%s",
                bool(track.title),
                bool(track.artist),
                played_at is not None,
            )
            return NowPlayingPayload.from_track(track, is_playing=False, played_at=played_at)
        if resp.status_code != 204:
            log.warning(
                "Unexpected recently-played response status=%d body=%s", resp.status_code, response_snippet(resp)
            )
            raise UpstreamRequestFailure(
                f"Spotify recently-played request failed with status {resp.status_code}", status=resp.status_code
            )

        log.info("Spotify returned no currently playing or recently played track")
        return NowPlayingPayload(source="spotify")

    async def fetch_live(self, log: logging.Logger | logging.LoggerAdapter) -> EndpointResult:
        if not self._settings.has_client_credentials():
            log.warning("Spotify client credentials are missing")
            return EndpointResult(
                status=200,
                payload=NowPlayingPayload(source="unconfigured", message=UNCONFIGURED_MESSAGE),
            )

        log.info("Fetching live Spotify playback data")
        try:
            payload = await self._lookup_playback(log)
        except Exception:
            log.exception("Failed to fetch Spotify data")
            return EndpointResult(
                status=502,
                payload=NowPlayingPayload(source="error", message=UPSTREAM_ERROR_MESSAGE),
            )
        return EndpointResult(status=200, payload=payload)

    async def now_playing(self, request_id: str | None = None) -> EndpointResult:
        log = RequestLogger(self._logger, request_id or make_request_id())
        return await self.cache.get_or_fetch(lambda: self.fetch_live(log), self.cache_ttl_ms, log)
