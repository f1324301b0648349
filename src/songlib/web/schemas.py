"""Pydantic schemas for web API requests and responses."""

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from songlib.dates import UNSET_DATE, SongDate
from songlib.models.song import Song


class SongCreateRequest(BaseModel):
    """Request for creating a song; the rest is fetched from the lookup service."""

    artist: str = Field(min_length=1, description="Artist or group name")
    title: str = Field(min_length=1, description="Song title")


class SongPutRequest(BaseModel):
    """Full song replacement."""

    artist: str = Field(min_length=1)
    title: str = Field(min_length=1)
    lyrics: str = Field(min_length=1)
    release_date: SongDate = Field(description="Release date, yyyy-mm-dd")
    url: str = Field(min_length=1)

    def to_song(self) -> Song:
        return Song(
            title=self.title,
            artist=self.artist,
            lyrics=self.lyrics,
            release_date=self.release_date,
            url=self.url,
        )


class SongPatchRequest(BaseModel):
    """Partial song update; omitted or empty fields are left unchanged."""

    artist: str = ""
    title: str = ""
    lyrics: str = ""
    release_date: Optional[SongDate] = Field(default=None, description="Release date, yyyy-mm-dd")
    url: str = ""

    @field_validator("release_date", mode="before")
    @classmethod
    def blank_date_is_unset(cls, value):
        if isinstance(value, str) and not value.strip():
            return UNSET_DATE
        return value

    def to_song(self, song_id: int) -> Song:
        return Song(
            id=song_id,
            title=self.title,
            artist=self.artist,
            lyrics=self.lyrics,
            release_date=self.release_date,
            url=self.url,
        )


class SongResponse(BaseModel):
    """Response model for a song."""

    id: int
    title: str
    artist: str
    lyrics: str
    release_date: Optional[SongDate] = None
    url: str

    @classmethod
    def from_song(cls, song: Song) -> "SongResponse":
        return cls(
            id=song.id,
            title=song.title,
            artist=song.artist,
            lyrics=song.lyrics,
            release_date=song.release_date,
            url=song.url,
        )


class MessageResponse(BaseModel):
    """Plain acknowledgement."""

    message: str


class ErrorResponse(BaseModel):
    """Error response model."""

    error: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
