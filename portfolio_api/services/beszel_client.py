from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import httpx

from portfolio_api.errors import UpstreamAuthFailure, UpstreamRequestFailure, UpstreamTimeout
from portfolio_api.settings import BeszelSettings

RECORDS_QUERY = "perPage=200&sort=-updated"


def join_url(base: str, path: str) -> str:
    return f"{(base or '').rstrip('/')}/{(path or '').lstrip('/')}"


class BeszelClient:
    """Reads PocketBase collections from a Beszel hub for a single request."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        settings: BeszelSettings,
        log: logging.Logger | logging.LoggerAdapter,
    ) -> None:
        self._http = http
        self._settings = settings
        self._log = log
        self._token: str | None = None

    async def authenticate(self) -> None:
        if not self._settings.has_credentials():
            return

        url = join_url(self._settings.base_url, self._settings.pb_auth_path)
        self._log.info("Authenticating against Beszel url=%s", url)
        try:
            resp = await self._http.post(
                url,
                json={"identity": self._settings.pb_email, "password": self._settings.pb_password},
                headers={"Accept": "application/json"},
            )
        except httpx.TimeoutException as exc:
            raise UpstreamTimeout(f"Beszel auth timed out: {url}") from exc
        except httpx.HTTPError as exc:
            raise UpstreamAuthFailure(f"Beszel auth request failed: {exc}") from exc

        if resp.status_code >= 400:
            raise UpstreamAuthFailure(
                f"Beszel auth failed with status {resp.status_code}", status=resp.status_code
            )
        data = resp.json()
        token = data.get("token") if isinstance(data, dict) else None
        if not isinstance(token, str) or not token.strip():
            raise UpstreamAuthFailure("Beszel auth response did not include a token")
        self._token = token.strip()
        self._log.info("Authenticated against Beszel")

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def fetch_json(self, url: str) -> Any | None:
        self._log.info("Fetching Beszel url=%s", url)
        try:
            resp = await self._http.get(url, headers=self._headers())
        except httpx.TimeoutException as exc:
            self._log.warning("Beszel fetch timed out url=%s", url)
            raise UpstreamTimeout(f"Beszel request timed out: {url}") from exc
        except httpx.HTTPError as exc:
            self._log.warning("Failed Beszel fetch url=%s: %s", url, exc)
            raise UpstreamRequestFailure(f"Beszel request failed: {exc}") from exc

        if resp.status_code == 404:
            self._log.info("Beszel url returned 404 url=%s", url)
            return None
        if resp.status_code >= 400:
            self._log.warning("Beszel url returned status=%s url=%s", resp.status_code, url)
            raise UpstreamRequestFailure(f"HTTP {resp.status_code}", status=resp.status_code)
        return resp.json()

    async def fetch_collection(self, name: str) -> list[dict[str, Any]] | None:
        url = join_url(self._settings.base_url, f"api/collections/{name}/records?{RECORDS_QUERY}")
        data = await self.fetch_json(url)
        items = data.get("items") if isinstance(data, dict) else None
        if not isinstance(items, list):
            self._log.info("Collection payload missing items array collection=%s", name)
            return None
        records = [item for item in items if isinstance(item, dict)]
        self._log.info("Collection fetched collection=%s count=%d", name, len(records))
        return records

    async def fetch_first_collection(self, candidates: Sequence[str], kind: str) -> list[dict[str, Any]]:
        for candidate in candidates:
            try:
                records = await self.fetch_collection(candidate)
            except (UpstreamRequestFailure, UpstreamTimeout, ValueError) as exc:
                self._log.warning(
                    "Beszel collection candidate failed; trying next kind=%s candidate=%s: %s",
                    kind,
                    candidate,
                    exc,
                )
                continue
            if records is not None:
                self._log.info(
                    "Selected Beszel collection kind=%s candidate=%s count=%d", kind, candidate, len(records)
                )
                return records
            self._log.info("Beszel collection candidate not available kind=%s candidate=%s", kind, candidate)

        self._log.warning("No Beszel collection candidate matched kind=%s candidates=%s", kind, list(candidates))
        return []
