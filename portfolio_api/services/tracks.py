from __future__ import annotations

from typing import Any

from portfolio_api.models.now_playing import TrackInfo


def clean_string(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def parse_track(track: Any) -> TrackInfo:
    """Normalize a raw Spotify track object; anything malformed becomes ``None``."""
    if not isinstance(track, dict):
        return TrackInfo()

    artists = track.get("artists")
    names: list[str] = []
    if isinstance(artists, list):
        for artist in artists:
            name = clean_string(artist.get("name")) if isinstance(artist, dict) else None
            if name:
                names.append(name)

    external_urls = track.get("external_urls")
    song_url = clean_string(external_urls.get("spotify")) if isinstance(external_urls, dict) else None

    album_image_url = None
    album = track.get("album")
    images = album.get("images") if isinstance(album, dict) else None
    if isinstance(images, list) and images and isinstance(images[0], dict):
        album_image_url = clean_string(images[0].get("url"))

    return TrackInfo(
        title=clean_string(track.get("name")),
        artist=", ".join(names) if names else None,
        song_url=song_url,
        album_image_url=album_image_url,
    )
