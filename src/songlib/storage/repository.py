"""Song repository: parameterized persistence for the songs table."""

from contextlib import contextmanager
from typing import TYPE_CHECKING, Iterator, Optional

from loguru import logger as default_logger
from sqlalchemy import Select, and_, select
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from songlib.dates import is_unset_date
from songlib.errors import ConflictError, NotFoundError, RequestTimeoutError, StorageError
from songlib.models.song import Song, SongFilter
from songlib.storage.database import SongRecord

if TYPE_CHECKING:
    from loguru import Logger

# Driver signals for the conditions the repository distinguishes
PG_UNIQUE_VIOLATION = "23505"
PG_QUERY_CANCELED = "57014"
SQLITE_CONSTRAINT = "SQLITE_CONSTRAINT"
SQLITE_CONSTRAINT_UNIQUE = "SQLITE_CONSTRAINT_UNIQUE"
SQLITE_BUSY = "SQLITE_BUSY"
SQLITE_INTERRUPT = "SQLITE_INTERRUPT"


def _sqlstate(exc: DBAPIError) -> Optional[str]:
    # psycopg2 exposes pgcode, psycopg 3 exposes sqlstate
    return getattr(exc.orig, "pgcode", None) or getattr(exc.orig, "sqlstate", None)


def _is_unique_violation(exc: IntegrityError) -> bool:
    if _sqlstate(exc) == PG_UNIQUE_VIOLATION:
        return True
    errorname = getattr(exc.orig, "sqlite_errorname", None)
    if errorname == SQLITE_CONSTRAINT_UNIQUE:
        return True
    # SQLite builds without extended result codes only report SQLITE_CONSTRAINT
    return errorname == SQLITE_CONSTRAINT and str(exc.orig).startswith("UNIQUE constraint failed")


def _is_timeout(exc: OperationalError) -> bool:
    if _sqlstate(exc) == PG_QUERY_CANCELED:
        return True
    errorname = getattr(exc.orig, "sqlite_errorname", None) or ""
    return errorname.startswith((SQLITE_BUSY, SQLITE_INTERRUPT))


def build_filter_conditions(song_filter: SongFilter) -> list:
    """Build one WHERE clause per constrained filter dimension.

    Each clause binds exactly one value, so the number of bound filter
    parameters always equals the number of clauses.
    """
    conditions = []
    if song_filter.title:
        conditions.append(SongRecord.title == song_filter.title)
    if song_filter.artist:
        conditions.append(SongRecord.artist == song_filter.artist)
    if not is_unset_date(song_filter.after):
        conditions.append(SongRecord.release_date >= song_filter.after)
    if not is_unset_date(song_filter.before):
        conditions.append(SongRecord.release_date <= song_filter.before)
    return conditions


def build_filtered_query(song_filter: SongFilter, offset: int, limit: int) -> Select:
    """Compose the SELECT for a filtered, paginated listing.

    Filter values, LIMIT and OFFSET are all bound parameters; LIMIT and
    OFFSET are bound after the filter values.
    """
    query = select(SongRecord)
    conditions = build_filter_conditions(song_filter)
    if conditions:
        query = query.where(and_(*conditions))
    return query.order_by(SongRecord.id.asc()).limit(limit).offset(offset)


class SongRepository:
    """Executes song queries against a caller-owned session factory."""

    def __init__(self, session_factory: sessionmaker, logger: Optional["Logger"] = None):
        """Initialize the repository.

        Args:
            session_factory: Bound SQLAlchemy session factory (the pooled connection)
            logger: Logger to use, defaults to the shared loguru logger
        """
        self.session_factory = session_factory
        self.logger = logger or default_logger.bind(component="repository")

    @contextmanager
    def _session(self, action: str, song: Optional[Song] = None) -> Iterator[Session]:
        """Open a session and translate driver errors into the domain taxonomy."""
        with self.session_factory() as session:
            try:
                yield session
            except IntegrityError as e:
                session.rollback()
                if _is_unique_violation(e):
                    if song is not None:
                        raise ConflictError(
                            f"song {song.title!r} by {song.artist!r} already exists"
                        ) from e
                    raise ConflictError("song with this title and artist already exists") from e
                raise StorageError(f"failed to {action}: {e.orig}") from e
            except OperationalError as e:
                session.rollback()
                if _is_timeout(e):
                    raise RequestTimeoutError(f"{action} timed out") from e
                raise StorageError(f"failed to {action}: {e.orig}") from e
            except SQLAlchemyError as e:
                session.rollback()
                raise StorageError(f"failed to {action}: {e}") from e
            except OverflowError as e:
                # Raised by the driver for integers wider than its column type
                session.rollback()
                raise StorageError(f"failed to {action}: {e}") from e

    def save(self, song: Song) -> Song:
        """Insert a song without an id, or fully update the song with its id.

        On insert the generated id is assigned to ``song``.

        Raises:
            ConflictError: If another song has the same title and artist
            NotFoundError: If an update targets an id that does not exist
            StorageError: On any other database failure
        """
        if song.id is None:
            self._insert(song)
        else:
            self._update(song)
        return song

    def _insert(self, song: Song) -> None:
        record = SongRecord.from_model(song)
        self.logger.debug("Inserting song", title=song.title, artist=song.artist)
        with self._session("insert song", song) as session:
            session.add(record)
            session.commit()
        song.id = record.id

    def _update(self, song: Song) -> None:
        self.logger.debug("Updating song", song_id=song.id)
        with self._session("update song", song) as session:
            count = (
                session.query(SongRecord)
                .filter(SongRecord.id == song.id)
                .update(
                    {
                        SongRecord.title: song.title,
                        SongRecord.artist: song.artist,
                        SongRecord.lyrics: song.lyrics,
                        SongRecord.release_date: song.release_date,
                        SongRecord.url: song.url,
                    },
                    synchronize_session=False,
                )
            )
            if count == 0:
                raise NotFoundError(f"song with id {song.id} not found")
            session.commit()

    def get_by_id(self, song_id: int) -> Song:
        """Get a song by id.

        Raises:
            NotFoundError: If no song has this id
        """
        self.logger.debug("Fetching song", song_id=song_id)
        with self._session("get song") as session:
            record = session.get(SongRecord, song_id)
            if record is None:
                raise NotFoundError(f"song with id {song_id} not found")
            return record.to_model()

    def get_all(self) -> list[Song]:
        """Get every song ordered by id."""
        with self._session("list songs") as session:
            records = session.scalars(select(SongRecord).order_by(SongRecord.id.asc())).all()
            return [r.to_model() for r in records]

    def get_filtered(self, song_filter: SongFilter, offset: int, limit: int) -> list[Song]:
        """Get songs matching every constrained filter dimension, ordered by id."""
        query = build_filtered_query(song_filter, offset, limit)
        self.logger.opt(lazy=True).debug(
            "Running query: {} {}", lambda: str(query), lambda: query.compile().params
        )

        with self._session("filter songs") as session:
            records = session.scalars(query).all()
            return [r.to_model() for r in records]

    def delete(self, song_id: int) -> None:
        """Delete a song by id.

        Raises:
            NotFoundError: If no song has this id
        """
        self.logger.debug("Deleting song", song_id=song_id)
        with self._session("delete song") as session:
            count = (
                session.query(SongRecord)
                .filter(SongRecord.id == song_id)
                .delete(synchronize_session=False)
            )
            if count == 0:
                raise NotFoundError(f"song with id {song_id} not found")
            session.commit()
