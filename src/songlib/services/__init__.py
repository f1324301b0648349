"""Services for the song library."""

from songlib.services.lookup import MetadataLookupClient
from songlib.services.songs import SongService

__all__ = ["MetadataLookupClient", "SongService"]
