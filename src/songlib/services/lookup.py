"""Client for the external song metadata lookup service."""

from typing import TYPE_CHECKING, Any, Optional

import httpx
from loguru import logger as default_logger
from pydantic import ValidationError as PydanticValidationError

from songlib.dates import DATE_FORMAT, parse_date
from songlib.errors import (
    FormatError,
    MetadataNotFoundError,
    RequestTimeoutError,
    ServiceError,
)
from songlib.models.metadata import SongMetadata

if TYPE_CHECKING:
    from loguru import Logger

INFO_PATH = "/info"
REQUIRED_FIELDS = ("releaseDate", "text", "link")


class MetadataLookupClient:
    """Fetches release date, lyrics and link for a song from the lookup service."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        date_format: str = DATE_FORMAT,
        logger: Optional["Logger"] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """Initialize the lookup client.

        Args:
            base_url: Base URL of the lookup service
            timeout: Request timeout in seconds
            date_format: strftime format of the service's release dates
            logger: Logger to use, defaults to the shared loguru logger
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = base_url.rstrip("/")
        self.date_format = date_format
        self.logger = logger or default_logger.bind(component="lookup")
        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
        )

    def __enter__(self) -> "MetadataLookupClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        """Release the underlying connection pool."""
        self._client.close()

    def get_song_info(self, artist: str, title: str) -> SongMetadata:
        """Look up metadata for a song.

        Args:
            artist: Artist or group name
            title: Song title

        Returns:
            Metadata for the song

        Raises:
            MetadataNotFoundError: If the service does not know the song
            ServiceError: On any other failure or an incomplete response
            RequestTimeoutError: If the service does not answer in time
        """
        params = {"group": artist, "song": title}
        self.logger.info("Looking up song metadata", artist=artist, title=title)

        try:
            response = self._client.get(INFO_PATH, params=params)
        except httpx.TimeoutException as e:
            raise RequestTimeoutError(f"metadata lookup timed out for {artist} - {title}") from e
        except httpx.HTTPError as e:
            raise ServiceError(f"metadata lookup request failed: {e}") from e

        if response.status_code == httpx.codes.NOT_FOUND:
            raise MetadataNotFoundError(f"no metadata found for {artist} - {title}")
        if not response.is_success:
            raise ServiceError(f"metadata lookup returned status {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise ServiceError("metadata lookup returned malformed JSON") from e

        return self._parse(payload)

    def _parse(self, payload: Any) -> SongMetadata:
        if not isinstance(payload, dict):
            raise ServiceError("metadata lookup returned an unexpected payload")

        missing = [name for name in REQUIRED_FIELDS if not payload.get(name)]
        if missing:
            raise ServiceError(f"metadata lookup response is missing {', '.join(missing)}")

        try:
            release_date = parse_date(str(payload["releaseDate"]), self.date_format)
            metadata = SongMetadata(
                release_date=release_date,
                lyrics=payload["text"],
                url=payload["link"],
            )
        except (FormatError, PydanticValidationError) as e:
            raise ServiceError(f"invalid metadata lookup response: {e}") from e

        self.logger.debug("Parsed song metadata", release_date=str(metadata.release_date))
        return metadata
