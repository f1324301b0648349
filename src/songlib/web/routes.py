"""API routes for the song library web service."""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Path, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from songlib import __version__
from songlib.dates import parse_date
from songlib.errors import (
    ConflictError,
    MetadataNotFoundError,
    NotFoundError,
    RequestTimeoutError,
    ServiceError,
    SongLibraryError,
    StorageError,
    ValidationError,
)
from songlib.models.song import Song, SongFilter
from songlib.services.lookup import MetadataLookupClient
from songlib.services.songs import SongService
from songlib.storage.database import MAX_INTEGER, MIN_INTEGER
from songlib.web.schemas import (
    ErrorResponse,
    HealthResponse,
    MessageResponse,
    SongCreateRequest,
    SongPatchRequest,
    SongPutRequest,
    SongResponse,
)

router = APIRouter()

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
SONG_QUERY_PARAMS = {"artist", "title", "after", "before", "page", "limit"}

SongId = Annotated[int, Path(ge=MIN_INTEGER, le=MAX_INTEGER, description="Song id")]

# Checked in order, so subclasses come before their parents
STATUS_CODES: list[tuple[type[SongLibraryError], int]] = [
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (MetadataNotFoundError, status.HTTP_404_NOT_FOUND),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (ServiceError, status.HTTP_502_BAD_GATEWAY),
    (RequestTimeoutError, status.HTTP_504_GATEWAY_TIMEOUT),
    (StorageError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


def status_code_for(error: SongLibraryError) -> int:
    """Map a domain error to its HTTP status code."""
    for error_type, code in STATUS_CODES:
        if isinstance(error, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def domain_error_handler(request: Request, exc: SongLibraryError) -> JSONResponse:
    """Render a domain error as an ErrorResponse."""
    body = ErrorResponse(error=type(exc).__name__, detail=exc.message)
    return JSONResponse(status_code=status_code_for(exc), content=body.model_dump())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed requests as 400 instead of FastAPI's default 422."""
    problems = [
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
    ]
    body = ErrorResponse(error="invalid request", detail="; ".join(problems))
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body.model_dump())


def get_song_service(request: Request) -> SongService:
    """Song service built at application startup."""
    return request.app.state.song_service


def get_lookup_client(request: Request) -> MetadataLookupClient:
    """Lookup client built at application startup."""
    return request.app.state.lookup_client


ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


@router.get(
    "/health",
    response_model=HealthResponse,
    tags=["System"],
    summary="Health check",
)
def health_check():
    """Check service health."""
    return HealthResponse(status="healthy", version=__version__)


@router.post(
    "/songs",
    response_model=SongResponse,
    status_code=status.HTTP_201_CREATED,
    responses={**ERROR_RESPONSES, 502: {"model": ErrorResponse}},
    tags=["Songs"],
    summary="Create a song",
    description="Create a song from artist and title; lyrics, release date and link "
    "are fetched from the metadata lookup service.",
)
def create_song(
    request: SongCreateRequest,
    service: SongService = Depends(get_song_service),
    lookup: MetadataLookupClient = Depends(get_lookup_client),
):
    """Create a new song enriched with looked-up metadata."""
    metadata = lookup.get_song_info(request.artist, request.title)
    song = Song(
        title=request.title,
        artist=request.artist,
        lyrics=metadata.lyrics,
        release_date=metadata.release_date,
        url=metadata.url,
    )
    return SongResponse.from_song(service.create_song(song))


@router.get(
    "/songs",
    response_model=list[SongResponse],
    responses={400: {"model": ErrorResponse}},
    tags=["Songs"],
    summary="List songs",
    description="List songs with optional filters on title, artist and release date "
    "range (inclusive, yyyy-mm-dd), paginated by page and limit.",
)
def list_songs(
    http_request: Request,
    artist: str = "",
    title: str = "",
    after: Optional[str] = None,
    before: Optional[str] = None,
    page: int = Query(DEFAULT_PAGE, ge=1, le=MAX_INTEGER),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_INTEGER),
    service: SongService = Depends(get_song_service),
):
    """List one page of songs matching the filters."""
    unknown = sorted(set(http_request.query_params) - SONG_QUERY_PARAMS)
    if unknown:
        raise ValidationError(f"invalid query parameter: {', '.join(unknown)}")

    song_filter = SongFilter(
        title=title,
        artist=artist,
        after=parse_date(after) if after else None,
        before=parse_date(before) if before else None,
    )
    songs = service.get_songs(song_filter, page=page, limit=limit)
    return [SongResponse.from_song(song) for song in songs]


@router.get(
    "/songs/{song_id}",
    response_model=SongResponse,
    responses=ERROR_RESPONSES,
    tags=["Songs"],
    summary="Get a song",
)
def get_song(song_id: SongId, service: SongService = Depends(get_song_service)):
    """Get a song by id."""
    return SongResponse.from_song(service.get_song(song_id))


@router.put(
    "/songs/{song_id}",
    response_model=SongResponse,
    responses={**ERROR_RESPONSES, 201: {"model": SongResponse}},
    tags=["Songs"],
    summary="Replace a song",
    description="Replace every field of an existing song, or create the song if the id "
    "does not exist. A created song gets a new generated id.",
)
def put_song(
    song_id: SongId,
    request: SongPutRequest,
    service: SongService = Depends(get_song_service),
):
    """Fully update a song, creating it when absent."""
    replacement = request.to_song()
    try:
        existing = service.get_song(song_id)
    except NotFoundError:
        created = service.create_song(replacement)
        return JSONResponse(
            status_code=status.HTTP_201_CREATED,
            content=SongResponse.from_song(created).model_dump(mode="json"),
        )

    return SongResponse.from_song(service.update_song(existing, replacement))


@router.patch(
    "/songs/{song_id}",
    response_model=SongResponse,
    responses=ERROR_RESPONSES,
    tags=["Songs"],
    summary="Partially update a song",
)
def patch_song(
    song_id: SongId,
    request: SongPatchRequest,
    service: SongService = Depends(get_song_service),
):
    """Update the provided fields of a song."""
    existing = service.get_song(song_id)
    updated = service.update_song(existing, request.to_song(song_id))
    return SongResponse.from_song(updated)


@router.delete(
    "/songs/{song_id}",
    response_model=MessageResponse,
    responses=ERROR_RESPONSES,
    tags=["Songs"],
    summary="Delete a song",
)
def delete_song(song_id: SongId, service: SongService = Depends(get_song_service)):
    """Delete a song by id."""
    service.delete_song(song_id)
    return MessageResponse(message=f"song {song_id} deleted")
