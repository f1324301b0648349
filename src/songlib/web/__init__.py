"""Web service for the song library."""

from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from loguru import logger

from songlib import __version__
from songlib.config import Settings, setup_logging
from songlib.errors import SongLibraryError
from songlib.services.lookup import MetadataLookupClient
from songlib.services.songs import SongService
from songlib.storage.database import Database
from songlib.storage.repository import SongRepository
from songlib.web.routes import domain_error_handler, request_validation_handler, router


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Application settings, read from the environment when omitted
    """
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Open the database and build services for the application's lifetime."""
        database = Database(settings.database_url, timeout=settings.db_timeout)
        database.init_db()
        repository = SongRepository(
            database.SessionLocal, logger=logger.bind(component="repository")
        )

        app.state.database = database
        app.state.song_service = SongService(repository, logger=logger.bind(component="service"))
        app.state.lookup_client = MetadataLookupClient(
            base_url=settings.lookup_base_url,
            timeout=settings.lookup_timeout,
            date_format=settings.lookup_date_format,
            logger=logger.bind(component="lookup"),
        )
        logger.info("Song library started", database=database.engine.url.render_as_string())

        yield

        app.state.lookup_client.close()
        database.dispose()
        logger.info("Song library stopped")

    app = FastAPI(
        title="Song Library",
        description="Create, browse, update and delete songs in a music library",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_exception_handler(SongLibraryError, domain_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        response = await call_next(request)
        logger.info(
            "{} {} -> {}",
            request.method,
            request.url.path,
            response.status_code,
            component="http",
        )
        return response

    app.include_router(router, prefix=settings.api_prefix)
    return app


def main(settings: Optional[Settings] = None):
    """Run the web server."""
    settings = settings or Settings.from_env()
    setup_logging(level=settings.log_level, serialize=settings.log_json)

    if settings.reload:
        # Reload needs an import string; the factory re-reads settings from the environment
        uvicorn.run(
            "songlib.web:create_app",
            factory=True,
            host=settings.host,
            port=settings.port,
            reload=True,
        )
        return

    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
