"""
Daily Devotional - Pipeline CLI

Command-line interface for generating daily content.
"""

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from core.config import ensure_directories, get_db_path, get_translation_catalog, load_config
from core.constants import ContentModeEnum, ProgressKindEnum
from core.db import (
    get_db,
    get_status_counts,
    get_table_counts,
    init_db as db_init_db,
    sync_translation_catalog,
)
from core.logging import get_logger
from core.models import ProgressEvent
from pipeline.day_runner import generate_day
from pipeline.month_runner import generate_month
from pipeline.regenerate import regenerate_field
from pipeline.services import PipelineServices

# Initialize Typer app
app = typer.Typer(
    name="devotional-pipeline",
    help="Daily Devotional: content generation pipeline",
    add_completion=False,
)

console = Console()
logger = get_logger(__name__)


def print_event(event: ProgressEvent) -> None:
    """Render one progress event on the console."""
    prefix = f"[dim]{event.day}/{event.total}[/dim] " if event.day else ""
    message = escape(event.message)

    if event.kind == ProgressKindEnum.ERROR.value:
        console.print(f"{prefix}[red]ERROR {escape(event.step)}[/red] {message}")
    elif event.kind == ProgressKindEnum.COMPLETE.value:
        console.print(f"{prefix}[bold green]DONE[/bold green] {message}")
    else:
        console.print(f"{prefix}[cyan]{escape(event.step)}[/cyan] {message}")


def _prepare_db(config: dict) -> Path:
    db_path = get_db_path(config)
    if not db_path.exists():
        console.print("[yellow]Database not found, initializing...[/yellow]")
        ensure_directories()
        db_init_db(db_path)
    return db_path


# ============================================================================
# Commands
# ============================================================================


@app.command()
def init_db(
    db_path: Optional[str] = typer.Option(
        None,
        "--db-path",
        "-d",
        help="Path to SQLite database file",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to pipeline config YAML",
    ),
) -> None:
    """
    Initialize the database and load the translation catalog.
    """
    ensure_directories()
    config = load_config(Path(config_path) if config_path else None)

    path = Path(db_path) if db_path else get_db_path(config)
    db_init_db(path)

    with get_db(path) as conn:
        count = sync_translation_catalog(conn, get_translation_catalog(config))

    console.print(f"[green]OK[/green] Database initialized at: {path} ({count} translation codes)")


@app.command()
def status(
    month: Optional[str] = typer.Option(
        None,
        "--month",
        "-m",
        help="Only count content for this month (YYYY-MM)",
    ),
) -> None:
    """
    Show table counts and content status counts.
    """
    db_path = get_db_path()

    if not db_path.exists():
        console.print("[yellow]Database not found. Run 'init-db' first.[/yellow]")
        return

    with get_db(db_path) as conn:
        counts = get_table_counts(conn)
        statuses = get_status_counts(conn, month)

    table = Table(title="Daily Devotional Database Status")
    table.add_column("Table", style="cyan")
    table.add_column("Count", style="green", justify="right")
    for table_name, count in counts.items():
        table.add_row(table_name, str(count))
    console.print(table)

    status_table = Table(title=f"Content Status{f' ({month})' if month else ''}")
    status_table.add_column("Status", style="cyan")
    status_table.add_column("Count", style="green", justify="right")
    for status_name, count in statuses.items():
        status_table.add_row(status_name, str(count))
    console.print(status_table)

    console.print(f"\nDatabase: {db_path}")


@app.command()
def run_day(
    date: str = typer.Argument(..., help="Date to generate (YYYY-MM-DD)"),
    mode: ContentModeEnum = typer.Option(
        ContentModeEnum.DEVOTIONAL,
        "--mode",
        help="Content mode",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to pipeline config YAML",
    ),
) -> None:
    """
    Generate (or complete) the content of one day.
    """
    config = load_config(Path(config_path) if config_path else None)
    db_path = _prepare_db(config)

    console.print(f"[bold cyan]=== {mode.value.title()} content for {date} ===[/bold cyan]\n")

    with get_db(db_path) as conn:
        services = PipelineServices.from_config(conn, config)
        try:
            result = asyncio.run(generate_day(services, date, mode.value, print_event))
        except ValueError as e:
            console.print(f"[red]{escape(str(e))}[/red]")
            raise typer.Exit(1)

    if not result.success:
        console.print(f"\n[red]FAILED[/red] {date}: {escape(result.error or '')}")
        raise typer.Exit(1)

    if result.already_complete:
        console.print(f"\n[green]OK[/green] {date} was already complete")
    else:
        console.print(f"\n[green]OK[/green] Generated content for {date}")


@app.command()
def run_month(
    month: str = typer.Argument(..., help="Month to generate (YYYY-MM)"),
    mode: ContentModeEnum = typer.Option(
        ContentModeEnum.DEVOTIONAL,
        "--mode",
        help="Content mode",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to pipeline config YAML",
    ),
) -> None:
    """
    Generate every day of a month.
    """
    config = load_config(Path(config_path) if config_path else None)
    db_path = _prepare_db(config)

    console.print(f"[bold cyan]=== {mode.value.title()} content for {month} ===[/bold cyan]\n")

    with get_db(db_path) as conn:
        services = PipelineServices.from_config(conn, config)
        result = asyncio.run(generate_month(services, month, mode.value, print_event))

    table = Table(title=f"Month {month}")
    table.add_column("Result", style="cyan")
    table.add_column("Days", style="green", justify="right")
    table.add_row("Generated", str(result.generated))
    table.add_row("Skipped (already complete)", str(result.skipped))
    table.add_row("Failed", str(result.failed))
    console.print()
    console.print(table)

    if result.failed_dates:
        console.print(f"[red]Failed:[/red] {', '.join(result.failed_dates)}")
        raise typer.Exit(1)


@app.command()
def regenerate(
    content_id: int = typer.Argument(..., help="Content record ID"),
    field: str = typer.Argument(..., help="Narrative field name, 'tts' or 'srt'"),
    code: Optional[str] = typer.Option(
        None,
        "--code",
        "-c",
        help="Translation code (required for tts/srt)",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to pipeline config YAML",
    ),
) -> None:
    """
    Overwrite one field of an existing record.
    """
    config = load_config(Path(config_path) if config_path else None)
    db_path = _prepare_db(config)

    with get_db(db_path) as conn:
        services = PipelineServices.from_config(conn, config)
        try:
            value = asyncio.run(regenerate_field(services, content_id, field, code, print_event))
        except (ValueError, RuntimeError) as e:
            console.print(f"[red]{escape(str(e))}[/red]")
            raise typer.Exit(1)

    console.print(f"[green]OK[/green] {field}: {escape(value[:200])}")


# ============================================================================
# Entry Point
# ============================================================================


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
