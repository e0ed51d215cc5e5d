"""Job queue commands for lyricsvault."""

import asyncio
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from lyricsvault.config import Settings
from lyricsvault.models import JobStatus
from lyricsvault.workers.queue import JobQueue

console = Console()
app = typer.Typer(help="Fetch job queue operations")


async def _with_queue(action):
    settings = Settings()
    job_queue = JobQueue(settings.LYRICSVAULT_JOBS_DB_PATH)
    await job_queue.initialize()
    try:
        return await action(job_queue)
    finally:
        await job_queue.stop()


@app.command("list")
def list_jobs(
    status: Optional[JobStatus] = typer.Option(
        None,
        "--status",
        "-s",
        help="Only show jobs with this status",
    ),
    limit: int = typer.Option(50, "--limit", "-n", help="Maximum jobs to show"),
) -> None:
    """List queued, failed and retained jobs, newest first."""
    jobs = asyncio.run(_with_queue(lambda q: q.list_jobs(status=status, limit=limit)))

    if not jobs:
        console.print("[yellow]No jobs found.[/yellow]")
        return

    table = Table(title=f"Jobs ({len(jobs)})")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Status")
    table.add_column("Attempts", justify="right")
    table.add_column("Song")
    table.add_column("Error", style="red")

    for job in jobs:
        table.add_row(
            job.id,
            job.name,
            job.status.value,
            f"{job.attempts_made}/{job.options.max_attempts}",
            str(job.payload.get("song_id", "")),
            job.error_message or "",
        )

    console.print(table)


@app.command("retry")
def retry_job(
    job_id: str = typer.Argument(..., help="ID of a failed job"),
) -> None:
    """Requeue a failed job with a fresh attempt budget."""
    job = asyncio.run(_with_queue(lambda q: q.retry_job(job_id)))

    if job is None:
        console.print(f"[red]No failed job with ID {job_id}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]Requeued job {job.id}[/green]")


@app.command("purge")
def purge_jobs(
    older_than: int = typer.Option(
        7,
        "--older-than",
        help="Delete failed jobs last updated more than this many days ago",
    ),
) -> None:
    """Delete old failed jobs."""
    deleted = asyncio.run(_with_queue(lambda q: q.purge_failed_jobs(older_than)))
    console.print(f"[green]Purged {deleted} failed jobs older than {older_than} days[/green]")
