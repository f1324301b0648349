"""Command-line interface for the song library."""

from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from songlib import __version__
from songlib.config import Settings, setup_logging
from songlib.dates import format_date, parse_date
from songlib.errors import FormatError, SongLibraryError
from songlib.models.song import SongFilter
from songlib.services.songs import SongService
from songlib.storage.database import MAX_INTEGER, Database
from songlib.storage.repository import SongRepository

console = Console()


def get_service(settings: Settings) -> SongService:
    """Create a SongService bound to the configured database."""
    database = Database(settings.database_url, timeout=settings.db_timeout)
    database.init_db()
    return SongService(SongRepository(database.SessionLocal))


def _parse_date_option(ctx, param, value: Optional[str]):
    if not value:
        return None
    try:
        return parse_date(value)
    except FormatError as e:
        raise click.BadParameter(e.message) from e


@click.group()
@click.version_option(version=__version__)
@click.option("--db", default=None, help="Database URL (overrides SONGLIB_DATABASE_URL)")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx, db: Optional[str], verbose: bool):
    """Song library - manage a catalogue of songs."""
    settings = Settings.from_env()
    if db:
        settings = settings.model_copy(update={"database_url": db})
    setup_logging(level="DEBUG" if verbose else settings.log_level, serialize=settings.log_json)
    ctx.obj = settings


@main.command()
@click.option("--host", default=None, help="Bind address")
@click.option("--port", "-p", default=None, type=int, help="Port to listen on")
@click.pass_obj
def serve(settings: Settings, host: Optional[str], port: Optional[int]):
    """Run the HTTP API server."""
    from songlib.web import main as run_server

    updates = {}
    if host:
        updates["host"] = host
    if port:
        updates["port"] = port
    run_server(settings.model_copy(update=updates))


@main.command(name="init-db")
@click.pass_obj
def init_db(settings: Settings):
    """Create the songs table if it does not exist."""
    database = Database(settings.database_url, timeout=settings.db_timeout)
    database.init_db()
    console.print(f"[green]Database ready at {database.engine.url.render_as_string()}[/green]")


@main.command()
@click.option("--artist", "-a", default="", help="Filter by artist")
@click.option("--title", "-t", default="", help="Filter by title")
@click.option("--after", callback=_parse_date_option, help="Released on or after (yyyy-mm-dd)")
@click.option("--before", callback=_parse_date_option, help="Released on or before (yyyy-mm-dd)")
@click.option(
    "--page", default=1, type=click.IntRange(min=1, max=MAX_INTEGER), help="Page number"
)
@click.option(
    "--limit", "-l", default=10, type=click.IntRange(min=1, max=MAX_INTEGER), help="Songs per page"
)
@click.option("--all", "show_all", is_flag=True, help="List every song, ignoring filters and paging")
@click.pass_obj
def songs(
    settings: Settings,
    artist: str,
    title: str,
    after,
    before,
    page: int,
    limit: int,
    show_all: bool,
):
    """List songs, optionally filtered."""
    service = get_service(settings)
    song_filter = SongFilter(title=title, artist=artist, after=after, before=before)

    try:
        if show_all:
            results = service.get_all_songs()
        else:
            results = service.get_songs(song_filter, page=page, limit=limit)
    except SongLibraryError as e:
        raise click.ClickException(e.message) from e

    if not results:
        console.print("[yellow]No songs found.[/yellow]")
        return

    table = Table(title="Songs")
    table.add_column("ID", style="dim")
    table.add_column("Artist", style="cyan")
    table.add_column("Title", style="green")
    table.add_column("Released", style="yellow")
    table.add_column("URL", style="blue")

    for song in results:
        table.add_row(
            str(song.id),
            song.artist,
            song.title,
            format_date(song.release_date) if song.release_date else "-",
            song.url or "-",
        )

    console.print(table)


@main.command()
@click.argument("song_id", type=int)
@click.pass_obj
def delete(settings: Settings, song_id: int):
    """Delete a song by id."""
    service = get_service(settings)
    try:
        service.delete_song(song_id)
    except SongLibraryError as e:
        raise click.ClickException(e.message) from e
    console.print(f"[green]Deleted song {song_id}[/green]")


if __name__ == "__main__":
    main()
