from __future__ import annotations

import httpx
from fastapi.testclient import TestClient

from portfolio_api.main import create_app
from portfolio_api.models.now_playing import EndpointResult, NowPlayingPayload
from tests.helpers import Recorder


def _client(settings, routes=None) -> TestClient:
    recorder = Recorder(routes or {})
    return TestClient(create_app(settings, transport=recorder.transport()))


def _assert_json_headers(resp: httpx.Response) -> None:
    assert resp.headers["content-type"] == "application/json; charset=utf-8"
    assert resp.headers["cache-control"] == "no-store"


def test_health(make_settings) -> None:
    with _client(make_settings()) as client:
        resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_spotify_endpoint_now_playing(make_settings) -> None:
    routes = {
        ("accounts.spotify.com", "/api/token"): {"access_token": "at"},
        ("api.spotify.com", "/v1/me/player/currently-playing"): {
            "is_playing": True,
            "item": {"name": "Song", "artists": [{"name": "Artist"}]},
        },
    }
    with _client(make_settings(), routes) as client:
        resp = client.get("/api/spotify")

    assert resp.status_code == 200
    _assert_json_headers(resp)
    body = resp.json()
    assert body["source"] == "spotify"
    assert body["isPlaying"] is True
    assert body["title"] == "Song"
    assert body["artist"] == "Artist"
    assert body["playedAt"] is None


def test_spotify_endpoint_unconfigured(make_settings) -> None:
    with _client(make_settings(spotify_client_id=None)) as client:
        resp = client.get("/api/spotify")

    assert resp.status_code == 200
    _assert_json_headers(resp)
    assert resp.json()["source"] == "unconfigured"
    assert resp.json()["title"] is None


def test_spotify_endpoint_upstream_failure_is_502(make_settings) -> None:
    routes = {("accounts.spotify.com", "/api/token"): httpx.Response(401, text="secret detail")}
    with _client(make_settings(), routes) as client:
        resp = client.get("/api/spotify")

    assert resp.status_code == 502
    _assert_json_headers(resp)
    assert resp.json()["source"] == "error"
    assert resp.json()["message"] == "Unable to reach Spotify API."
    assert "secret detail" not in resp.text


def test_spotify_endpoint_unexpected_failure_is_500(make_settings) -> None:
    app = create_app(make_settings(), transport=Recorder({}).transport())

    async def explode(request_id=None) -> EndpointResult:
        raise RuntimeError("boom")

    app.state.proxies.now_playing.now_playing = explode
    with TestClient(app) as client:
        resp = client.get("/api/spotify")

    assert resp.status_code == 500
    _assert_json_headers(resp)
    assert resp.json() == NowPlayingPayload(
        source="error", message="Unexpected server error while loading Spotify state."
    ).to_json()
    assert "boom" not in resp.text


def test_homelab_endpoint_falls_back_to_mock(make_settings) -> None:
    with _client(make_settings()) as client:
        resp = client.get("/api/homelab")

    assert resp.status_code == 200
    _assert_json_headers(resp)
    body = resp.json()
    assert body["source"] == "mock"
    assert body["summary"] == {"hosts": 0, "containers": 5, "pods": 4, "alerts": 3}
    assert len(body["rows"]) == 9


def test_endpoints_are_get_only(make_settings) -> None:
    with _client(make_settings()) as client:
        assert client.post("/api/spotify").status_code == 405
        assert client.post("/api/homelab").status_code == 405
