"""Error taxonomy shared by the repository, service and web layers."""


class SongLibraryError(Exception):
    """Base class for all song library errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SongLibraryError):
    """Input has the wrong shape or value."""


class FormatError(ValidationError, ValueError):
    """Text does not match the expected date format."""


class NotFoundError(SongLibraryError):
    """Referenced song does not exist."""


class ConflictError(SongLibraryError):
    """A song with the same title and artist already exists."""


class ServiceError(SongLibraryError):
    """External metadata lookup failed."""


class MetadataNotFoundError(ServiceError):
    """External lookup service has no metadata for the song."""


class StorageError(SongLibraryError):
    """Any other database failure."""


class RequestTimeoutError(SongLibraryError):
    """A database or lookup call exceeded its deadline."""
