"""Main entry point for the lyricsvault CLI.

Provides a Typer-based CLI for running the API service and the lyrics
fetch worker, and for database and job queue maintenance.
"""

import asyncio

import typer
from rich.console import Console

from lyricsvault import __version__
from lyricsvault.bootstrap import build_services
from lyricsvault.cli import db as db_commands
from lyricsvault.cli import jobs as jobs_commands
from lyricsvault.config import Settings
from lyricsvault.core.documents import LyricsDocumentStore
from lyricsvault.core.songs import SongStore
from lyricsvault.db.client import DatabaseClient
from lyricsvault.logging_config import get_logger, setup_logging

console = Console()
logger = get_logger(__name__)

# Create the main Typer app
app = typer.Typer(
    name="lyricsvault",
    help="Structured lyrics store with version history",
    rich_markup_mode="rich",
)

# Add subcommand groups
app.add_typer(db_commands.app, name="db", help="Database operations")
app.add_typer(jobs_commands.app, name="jobs", help="Fetch job queue operations")


def version_callback(value: bool) -> None:
    """Callback for --version flag."""
    if value:
        console.print(f"lyricsvault version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """lyricsvault: structured lyrics with version history.

    ## Commands

    * [bold cyan]serve[/bold cyan] - Run the HTTP API
    * [bold cyan]worker[/bold cyan] - Run the lyrics fetch worker
    * [bold cyan]backfill[/bold cyan] - Convert legacy flat-text lyrics
    * [bold cyan]db[/bold cyan] - Database operations (init, status)
    * [bold cyan]jobs[/bold cyan] - Job queue operations (list, retry, purge)
    """
    pass


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", "--host", help="Bind address"),
    port: int = typer.Option(8000, "--port", "-p", help="Bind port"),
) -> None:
    """Run the HTTP API (with the in-process worker unless disabled)."""
    from lyricsvault.main import main as run_server

    run_server(host=host, port=port)


async def _run_worker(settings: Settings, once: bool) -> int:
    app_services = build_services(settings)
    job_queue = app_services.job_queue
    if job_queue is None:
        console.print("[yellow]Lyrics fetching is disabled (FETCH_ENABLED=false)[/yellow]")
        app_services.db.close()
        return 0

    await job_queue.initialize()
    try:
        if once:
            return await job_queue.drain()
        await job_queue.process_jobs()
        return 0
    finally:
        await app_services.close()


@app.command()
def worker(
    once: bool = typer.Option(
        False,
        "--once",
        help="Run every queued job (including pending retries) and exit",
    ),
) -> None:
    """Run the lyrics fetch worker as a standalone process."""
    settings = Settings()
    setup_logging(settings.LYRICSVAULT_LOG_DIR, settings.LYRICSVAULT_LOG_LEVEL, console=not once)

    logger.info(f"Starting lyrics fetch worker (once={once})")
    try:
        attempts = asyncio.run(_run_worker(settings, once))
    except KeyboardInterrupt:
        console.print("[yellow]Worker stopped[/yellow]")
        return

    if once:
        console.print(f"[green]Worker finished: {attempts} job attempts made[/green]")


@app.command()
def backfill() -> None:
    """Create version-1 lyrics documents from legacy flat-text lyrics.

    Safe to run repeatedly; songs that already have a document are skipped.
    """
    settings = Settings()

    with DatabaseClient(settings.LYRICSVAULT_DB_PATH) as client:
        client.initialize_schema()
        songs = SongStore(client)
        documents = LyricsDocumentStore(client, songs)
        converted, skipped = documents.backfill_from_legacy()

    logger.info(f"Backfill converted {converted} songs, skipped {skipped}")
    console.print(f"[green]Converted {converted} songs[/green] ([dim]{skipped} skipped[/dim])")


# Entry point for the CLI
def cli_entry() -> None:
    """Entry point for the CLI application."""
    app()


if __name__ == "__main__":
    cli_entry()
