from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from portfolio_api.logs import HOMELAB_LOGGER, SPOTIFY_LOGGER, RequestLogger, make_request_id
from portfolio_api.models.now_playing import NowPlayingPayload
from portfolio_api.services.now_playing import UNEXPECTED_ERROR_MESSAGE

router = APIRouter()

JSON_HEADERS = {"Cache-Control": "no-store"}
JSON_MEDIA_TYPE = "application/json; charset=utf-8"


def json_response(content: dict[str, Any], status_code: int = 200) -> JSONResponse:
    return JSONResponse(content=content, status_code=status_code, media_type=JSON_MEDIA_TYPE, headers=JSON_HEADERS)


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/api/homelab")
async def homelab(request: Request) -> JSONResponse:
    proxies = request.app.state.proxies
    request_id = make_request_id()
    log = RequestLogger(logging.getLogger(HOMELAB_LOGGER), request_id)
    log.info("Received /api/homelab request")

    snapshot = await proxies.homelab.snapshot(request_id)

    log.info(
        "Completed /api/homelab request source=%s hosts=%d containers=%d pods=%d alerts=%d",
        snapshot.source,
        snapshot.summary.hosts,
        snapshot.summary.containers,
        snapshot.summary.pods,
        snapshot.summary.alerts,
    )
    return json_response(snapshot.to_json())


@router.get("/api/spotify")
async def spotify(request: Request) -> JSONResponse:
    proxies = request.app.state.proxies
    request_id = make_request_id()
    log = RequestLogger(logging.getLogger(SPOTIFY_LOGGER), request_id)
    log.info("Received /api/spotify request")

    try:
        result = await proxies.now_playing.now_playing(request_id)
    except Exception:
        log.exception("Unhandled /api/spotify error")
        payload = NowPlayingPayload(source="error", message=UNEXPECTED_ERROR_MESSAGE)
        return json_response(payload.to_json(), status_code=500)

    log.info("Completed /api/spotify request status=%d source=%s", result.status, result.payload.source)
    return json_response(result.payload.to_json(), status_code=result.status)
