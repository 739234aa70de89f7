from __future__ import annotations

import pytest

from portfolio_api.services.tracks import parse_track


def test_parse_track_full_record() -> None:
    track = parse_track(
        {
            "name": "  Song  ",
            "artists": [{"name": "Artist"}, {"name": " "}, {"name": "Other "}, {}],
            "external_urls": {"spotify": "https://open.spotify.com/track/1"},
            "album": {"images": [{"url": "https://i.scdn.co/image/big"}, {"url": "https://i.scdn.co/image/small"}]},
        }
    )

    assert track.title == "Song"
    assert track.artist == "Artist, Other"
    assert track.song_url == "https://open.spotify.com/track/1"
    assert track.album_image_url == "https://i.scdn.co/image/big"


@pytest.mark.parametrize(
    "raw",
    [
        None,
        "track",
        42,
        [],
        {},
        {"name": 7, "artists": "Artist", "external_urls": [], "album": {"images": "x"}},
        {"name": "   ", "artists": [None, 3, {"name": None}], "external_urls": {"spotify": ""}},
        {"album": {"images": [None, {"url": "https://later"}]}},
        {"album": {"images": []}, "external_urls": {"spotify": 5}},
    ],
)
def test_parse_track_malformed_degrades_to_none(raw) -> None:
    track = parse_track(raw)

    for value in (track.title, track.artist, track.song_url, track.album_image_url):
        assert value is None or (value == value.strip() and value != "")
    assert track.title is None
    assert track.artist is None


def test_parse_track_only_artists() -> None:
    track = parse_track({"artists": [{"name": "A"}, {"name": "B"}]})

    assert track.title is None
    assert track.artist == "A, B"
    assert track.song_url is None
    assert track.album_image_url is None
