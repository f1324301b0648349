"""Persistence layer for the song library."""

from songlib.storage.database import Database, SongRecord
from songlib.storage.repository import SongRepository

__all__ = ["Database", "SongRecord", "SongRepository"]
