"""Metadata returned by the external song lookup service."""

from pydantic import BaseModel, Field

from songlib.dates import SongDate


class SongMetadata(BaseModel):
    """Release date, lyrics and link for a song, used when creating it."""

    release_date: SongDate = Field(alias="releaseDate")
    lyrics: str = Field(alias="text", min_length=1)
    url: str = Field(alias="link", min_length=1)

    class Config:
        populate_by_name = True
