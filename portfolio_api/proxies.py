from __future__ import annotations

import httpx

from portfolio_api.services.homelab import HomelabService
from portfolio_api.services.now_playing import NowPlayingService
from portfolio_api.settings import Settings


class Proxies:
    """Owns the shared HTTP client and the two proxy services built on it."""

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._settings = settings
        self.http = httpx.AsyncClient(
            timeout=settings.http_timeout_seconds,
            transport=transport,
            headers={"User-Agent": "portfolio-api"},
        )
        self.homelab = HomelabService(self.http, settings.beszel())
        self.now_playing = NowPlayingService(self.http, settings.spotify())

    async def shutdown(self) -> None:
        await self.http.aclose()
