import asyncio
import sys

import click

from .config import load_settings
from .exceptions import ConfigError
from .log import setup_logging
from .models import SongRecord
from .session import CatalogSession

EMPTY_MESSAGE = "No songs found. Be the first to add one."


def format_song(song: SongRecord) -> str:
    """Render one catalog entry as a single line, plus its listen link if any."""
    line = f"{song.title} - {song.artist}"
    if song.album:
        line += f" • {song.album}"
    if song.genre:
        line += f" [{song.genre}]"
    if song.year:
        line += f" (Released {song.year})"
    if song.listen_url:
        line += f"\n    Listen: {song.listen_url}"
    return line


async def _list_songs(settings, query: str, genre: str) -> tuple[tuple[SongRecord, ...], str | None]:
    async with CatalogSession(settings) as session:
        if query or genre:
            session.filters.set_query(query)
            if genre:
                session.filters.set_genre(genre)
            else:
                session.filters.commit_search()
            await session.controller.wait_idle()
        state = session.controller.state
    return state.songs, state.error


async def _list_genres(settings) -> tuple[tuple[str, ...], str | None]:
    async with CatalogSession(settings) as session:
        state = session.controller.state
    return state.genres, state.error


async def _add_song(settings, values: dict[str, str]) -> bool:
    def report(message: str) -> None:
        click.echo(f"Error: {message}", err=True)

    async with CatalogSession(settings, on_error=report, autostart=False) as session:
        for name, value in values.items():
            session.submission.set_field(name, value)
        return await session.submission.submit()


@click.group()
@click.option("--base-url", default=None, metavar="URL",
              help="Catalog service base URL (default: $FREEMUSIC_BACKEND_URL).")
@click.option("-v", "--verbose", is_flag=True, default=False,
              help="Log requests and state changes.")
@click.pass_context
def main(ctx: click.Context, base_url: str | None, verbose: bool) -> None:
    """Browse and contribute to a community catalog of free music."""
    setup_logging(verbose)
    try:
        ctx.obj = load_settings(base_url)
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


@main.command()
@click.option("-q", "--query", default="", help="Search title or artist.")
@click.option("-g", "--genre", default="", help="Only show this genre.")
@click.pass_obj
def songs(settings, query: str, genre: str) -> None:
    """List songs in the catalog."""
    found, error = asyncio.run(_list_songs(settings, query, genre))
    if error:
        click.echo(f"Error: {error}", err=True)
        sys.exit(1)
    if not found:
        click.echo(EMPTY_MESSAGE)
        return
    for song in found:
        click.echo(format_song(song))


@main.command()
@click.pass_obj
def genres(settings) -> None:
    """List the genres present in the catalog."""
    found, error = asyncio.run(_list_genres(settings))
    if error:
        click.echo(f"Error: {error}", err=True)
        sys.exit(1)
    for name in found:
        click.echo(name)


@main.command()
@click.option("--title", required=True)
@click.option("--artist", required=True)
@click.option("--album", default="")
@click.option("--genre", default="")
@click.option("--year", default="", help="Release year, e.g. 1998.")
@click.option("--cover-url", default="", help="Cover image URL.")
@click.option("--listen-url", default="", help="Listen URL (YouTube, SoundCloud, etc.)")
@click.pass_obj
def add(settings, **values: str) -> None:
    """Add a free track to the catalog."""
    if not asyncio.run(_add_song(settings, values)):
        sys.exit(1)
    click.echo(f'Added "{values["title"].strip()}"')
