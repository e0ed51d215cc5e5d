"""Database commands for lyricsvault.

Provides CLI commands for schema initialization and status checking.
"""

import typer
from rich.console import Console
from rich.table import Table

from lyricsvault.config import Settings
from lyricsvault.db.client import DatabaseClient

console = Console()
app = typer.Typer(help="Database operations")


@app.command("init")
def init_db(
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Drop all tables and re-create them (destructive)",
    ),
) -> None:
    """Initialize the lyrics database.

    Creates the database file and the schema. Use --force to reset an
    existing database.
    """
    settings = Settings()
    db_path = settings.LYRICSVAULT_DB_PATH

    with DatabaseClient(db_path) as client:
        if force and db_path.exists():
            console.print(f"[red]Resetting database at {db_path}...[/red]")
            client.reset_database()
            console.print("[green]Database reset and re-initialized successfully![/green]")
        else:
            console.print(f"Initializing database at {db_path}...")
            client.initialize_schema()
            console.print("[green]Database initialized successfully![/green]")

    show_status()


@app.command("status")
def show_status() -> None:
    """Show database path, size and table row counts."""
    settings = Settings()
    db_path = settings.LYRICSVAULT_DB_PATH
    exists = db_path.exists()

    info_table = Table(title="Database Information")
    info_table.add_column("Property", style="cyan")
    info_table.add_column("Value", style="green")

    info_table.add_row("Database Path", str(db_path))
    info_table.add_row("Exists", "Yes" if exists else "No")

    if exists:
        size = db_path.stat().st_size
        info_table.add_row("File Size", f"{size:,} bytes ({size / 1024 / 1024:.2f} MB)")

    console.print(info_table)

    if not exists:
        console.print("\n[yellow]Database does not exist. Run 'lyricsvault db init' to create it.[/yellow]")
        return

    with DatabaseClient(db_path) as client:
        counts = client.get_table_counts()

    stats_table = Table(title="Table Statistics")
    stats_table.add_column("Table", style="cyan")
    stats_table.add_column("Rows", style="green", justify="right")

    for table_name, count in counts.items():
        stats_table.add_row(table_name, f"{count:,}")

    console.print(stats_table)
