"""Database schema and engine bootstrap for the song library."""

import time
from typing import Any, Optional

from sqlalchemy import (
    Column,
    Date,
    Engine,
    Integer,
    String,
    Text,
    UniqueConstraint,
    create_engine,
    event,
)
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from songlib.models.song import Song

# Range of an INTEGER column, LIMIT or OFFSET
MIN_INTEGER = -(2**63)
MAX_INTEGER = 2**63 - 1

DEADLINE_KEY = "songlib_statement_deadline"
# VM instructions between deadline checks
SQLITE_PROGRESS_STEPS = 1000


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""

    pass


class SongRecord(Base):
    """SQLAlchemy model for songs."""

    __tablename__ = "songs"
    __table_args__ = (UniqueConstraint("name", "artist", name="uq_songs_name_artist"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column("name", String, nullable=False, index=True)
    artist = Column(String, nullable=False, index=True)
    lyrics = Column(Text, nullable=False, default="")
    release_date = Column(Date, nullable=True)
    url = Column(String, nullable=False, default="")

    def to_model(self) -> Song:
        """Convert to Pydantic model."""
        return Song(
            id=self.id,
            title=self.title,
            artist=self.artist,
            lyrics=self.lyrics,
            release_date=self.release_date,
            url=self.url,
        )

    @classmethod
    def from_model(cls, song: Song) -> "SongRecord":
        """Create from Pydantic model."""
        return cls(
            id=song.id,
            title=song.title,
            artist=song.artist,
            lyrics=song.lyrics,
            release_date=song.release_date,
            url=song.url,
        )


def _connect_args(url: str, timeout: Optional[float]) -> dict[str, Any]:
    if url.startswith("sqlite"):
        # Sessions are opened from the web server's worker threads
        args: dict[str, Any] = {"check_same_thread": False}
        if timeout:
            args["timeout"] = timeout
        return args
    if url.startswith("postgresql") and timeout:
        return {"options": f"-c statement_timeout={int(timeout * 1000)}"}
    return {}


def install_sqlite_deadline(engine: Engine, timeout: float) -> None:
    """Interrupt SQLite statements that run longer than ``timeout`` seconds.

    SQLite's own ``timeout`` only bounds lock waits, so a progress handler
    checks a per-connection deadline that restarts with every statement and
    commit. An interrupted statement fails with SQLITE_INTERRUPT.
    """

    @event.listens_for(engine, "connect")
    def _set_progress_handler(dbapi_connection, connection_record):
        info = connection_record.info
        info[DEADLINE_KEY] = None

        def _past_deadline() -> int:
            deadline = info.get(DEADLINE_KEY)
            return int(deadline is not None and time.monotonic() > deadline)

        dbapi_connection.set_progress_handler(_past_deadline, SQLITE_PROGRESS_STEPS)

    def _start_deadline(conn, *args):
        conn.info[DEADLINE_KEY] = time.monotonic() + timeout

    def _clear_deadline(conn, *args):
        conn.info[DEADLINE_KEY] = None

    event.listen(engine, "before_cursor_execute", _start_deadline)
    event.listen(engine, "commit", _start_deadline)
    # A rollback must always be allowed to finish
    event.listen(engine, "rollback", _clear_deadline)

    @event.listens_for(engine, "checkin")
    def _clear_on_checkin(dbapi_connection, connection_record):
        connection_record.info[DEADLINE_KEY] = None


class Database:
    """Owns the engine and session factory handed to the repository."""

    def __init__(self, url: str = "sqlite:///songlib.db", timeout: Optional[float] = None):
        """Initialize the database.

        Args:
            url: SQLAlchemy database URL
            timeout: Per-statement timeout in seconds, applied through the driver
        """
        self.url = url
        self.engine = create_engine(url, connect_args=_connect_args(url, timeout))
        if url.startswith("sqlite") and timeout:
            install_sqlite_deadline(self.engine, timeout)
        self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False)

    def init_db(self):
        """Create all tables."""
        Base.metadata.create_all(self.engine)

    def dispose(self):
        """Close all pooled connections."""
        self.engine.dispose()
