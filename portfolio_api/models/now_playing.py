from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

NowPlayingSource = Literal["spotify", "unconfigured", "error"]


class TrackInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str | None = None
    artist: str | None = None
    song_url: str | None = None
    album_image_url: str | None = None


class NowPlayingPayload(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    source: NowPlayingSource
    is_playing: bool = False
    title: str | None = None
    artist: str | None = None
    song_url: str | None = None
    album_image_url: str | None = None
    played_at: str | None = None
    message: str | None = None

    @classmethod
    def from_track(
        cls, track: TrackInfo, *, is_playing: bool, played_at: str | None = None
    ) -> NowPlayingPayload:
        return cls(
            source="spotify",
            is_playing=is_playing,
            title=track.title,
            artist=track.artist,
            song_url=track.song_url,
            album_image_url=track.album_image_url,
            played_at=played_at,
        )

    def to_json(self) -> dict[str, Any]:
        # message is optional on the wire; the track fields are always present
        exclude = {"message"} if self.message is None else None
        return self.model_dump(by_alias=True, exclude=exclude)


class TokenStoreRecord(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    refresh_token: str
    updated_at: str


@dataclass(frozen=True)
class EndpointResult:
    status: int
    payload: NowPlayingPayload


@dataclass(frozen=True)
class CachedResult:
    result: EndpointResult
    expires_at: float

    def is_fresh(self, now: float) -> bool:
        return now < self.expires_at
