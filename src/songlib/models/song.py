"""Song model and the filter used to query songs."""

from typing import Optional

from pydantic import BaseModel, Field

from songlib.dates import SongDate


class Song(BaseModel):
    """A song in the library."""

    id: Optional[int] = Field(default=None, description="Database identifier, None until persisted")
    title: str = Field(description="Song title")
    artist: str = Field(description="Artist or group name")
    lyrics: str = Field(default="", description="Song lyrics")
    release_date: Optional[SongDate] = Field(default=None, description="Release date")
    url: str = Field(default="", description="Link to the song")

    class Config:
        from_attributes = True


class SongFilter(BaseModel):
    """Optional constraints for listing songs.

    Empty strings and unset dates place no constraint on their dimension.
    Date bounds are inclusive.
    """

    title: str = ""
    artist: str = ""
    after: Optional[SongDate] = None
    before: Optional[SongDate] = None