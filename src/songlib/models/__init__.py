"""Data models for the song library."""

from songlib.models.metadata import SongMetadata
from songlib.models.song import Song, SongFilter

__all__ = ["Song", "SongFilter", "SongMetadata"]
