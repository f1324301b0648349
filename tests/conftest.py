"""Shared fixtures for the song library tests."""

from datetime import date

import pytest

from songlib.models.song import Song
from songlib.storage.database import Database
from songlib.storage.repository import SongRepository


@pytest.fixture
def database(tmp_path):
    """File-backed SQLite database with the songs table created."""
    db = Database(f"sqlite:///{tmp_path / 'songs.db'}", timeout=5.0)
    db.init_db()
    yield db
    db.dispose()


@pytest.fixture
def repository(database):
    """Song repository bound to the test database."""
    return SongRepository(database.SessionLocal)


@pytest.fixture
def make_song():
    """Factory for unsaved songs with sensible defaults."""

    def _make(title="Song Name", artist="Song Artist", **overrides) -> Song:
        fields = {
            "title": title,
            "artist": artist,
            "lyrics": "Song lyrics",
            "release_date": date(2021, 1, 1),
            "url": "https://song.url",
        }
        fields.update(overrides)
        return Song(**fields)

    return _make
