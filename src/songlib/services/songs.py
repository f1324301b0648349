"""Song service: identifier rules and partial-update merging over the repository."""

import functools
from typing import TYPE_CHECKING, Optional

from loguru import logger as default_logger

from songlib.dates import is_unset_date
from songlib.errors import SongLibraryError, ValidationError
from songlib.models.song import Song, SongFilter
from songlib.storage.database import MAX_INTEGER
from songlib.storage.repository import SongRepository

if TYPE_CHECKING:
    from loguru import Logger

PATCHABLE_TEXT_FIELDS = ("title", "artist", "lyrics", "url")


def log_failures(operation_name: str):
    """Log domain failures of a service operation and re-raise them unchanged."""

    def decorator(func):
        @functools.wraps(func)
        def wrapper(self, *args, **kwargs):
            try:
                return func(self, *args, **kwargs)
            except SongLibraryError as e:
                self.logger.error(
                    "{} failed: {}", operation_name, e.message, error=type(e).__name__
                )
                raise

        return wrapper

    return decorator


class SongService:
    """Application operations on songs."""

    def __init__(self, repository: SongRepository, logger: Optional["Logger"] = None):
        """Initialize the song service.

        Args:
            repository: Repository that owns persisted songs
            logger: Logger to use, defaults to the shared loguru logger
        """
        self.repository = repository
        self.logger = logger or default_logger.bind(component="service")

    @log_failures("create song")
    def create_song(self, song: Song) -> Song:
        """Persist a new song and assign its id.

        Raises:
            ValidationError: If the song already carries an id
        """
        if song.id is not None:
            raise ValidationError("id must not be set for a new song")
        saved = self.repository.save(song)
        self.logger.info("Created song", song_id=saved.id, title=saved.title, artist=saved.artist)
        return saved

    @log_failures("get song")
    def get_song(self, song_id: int) -> Song:
        """Get a song by id."""
        return self.repository.get_by_id(song_id)

    @log_failures("list songs")
    def get_all_songs(self) -> list[Song]:
        """Get every song ordered by id."""
        return self.repository.get_all()

    @log_failures("filter songs")
    def get_songs(self, song_filter: SongFilter, page: int, limit: int) -> list[Song]:
        """Get one page of songs matching the filter.

        Args:
            song_filter: Constraints to apply
            page: 1-based page number
            limit: Page size

        Raises:
            ValidationError: If the page starts beyond the largest storable offset
        """
        offset = (page - 1) * limit
        if offset > MAX_INTEGER:
            raise ValidationError(f"page {page} of size {limit} is out of range")
        return self.repository.get_filtered(song_filter, offset, limit)

    @log_failures("update song")
    def update_song(self, existing: Song, patch: Song) -> Song:
        """Merge the non-empty fields of ``patch`` onto ``existing`` and save.

        Empty strings and an unset release date in ``patch`` leave the
        corresponding field of ``existing`` unchanged.

        Raises:
            ValidationError: If ``existing`` has no id
        """
        if existing.id is None:
            raise ValidationError("cannot update a song without an id")

        changes = {}
        for field in PATCHABLE_TEXT_FIELDS:
            value = getattr(patch, field)
            if value:
                changes[field] = value
        if not is_unset_date(patch.release_date):
            changes["release_date"] = patch.release_date

        merged = existing.model_copy(update=changes)
        saved = self.repository.save(merged)
        self.logger.info("Updated song", song_id=saved.id, fields=sorted(changes))
        return saved

    @log_failures("delete song")
    def delete_song(self, song_id: int) -> None:
        """Delete a song by id."""
        self.repository.delete(song_id)
        self.logger.info("Deleted song", song_id=song_id)
