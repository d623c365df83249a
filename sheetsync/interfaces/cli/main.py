"""
CLI Main - Typer-based command-line interface.

Usage:
    sheetsync init
    sheetsync serve
    sheetsync rows run-42
    sheetsync sync robot-1 run-42
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

app = typer.Typer(
    name="sheetsync",
    help="SheetSync - Append workflow run output to Google Sheets",
    add_completion=False,
)
console = Console()


@app.callback()
def configure(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    from sheetsync.config import get_settings

    level = logging.DEBUG if verbose else get_settings().log_level.upper()
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


@app.command()
def serve(
    host: str | None = typer.Option(None, "--host", "-h", help="Host to bind"),
    port: int | None = typer.Option(None, "--port", "-p", help="Port to bind"),
    reload: bool = typer.Option(False, "--reload", "-r", help="Enable auto-reload"),
) -> None:
    """Start the API server."""
    import uvicorn

    from sheetsync.config import get_settings

    settings = get_settings()
    host = host or settings.api_host
    port = port or settings.api_port

    console.print("\n[green]Starting SheetSync API server[/green]")
    console.print(f"[dim]http://{host}:{port}[/dim]\n")

    uvicorn.run(
        "sheetsync.interfaces.api:create_app",
        host=host,
        port=port,
        reload=reload,
        factory=True,
    )


@app.command()
def init(
    db_path: Path | None = typer.Option(None, "--db", "-d", help="SQLite database path"),
) -> None:
    """Create the database and its tables."""
    asyncio.run(_init_async(db_path))


async def _init_async(db_path: Path | None) -> None:
    from sheetsync.adapters.sqlite import SQLiteRepository
    from sheetsync.config import get_settings

    path = db_path or get_settings().db_path

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        progress.add_task("Initializing SQLite database...", total=None)
        repo = SQLiteRepository(path)
        try:
            await repo.initialize()
        finally:
            await repo.close()

    console.print("\n[green]Initialization complete![/green]")
    console.print(f"[dim]Database: {path}[/dim]")


@app.command()
def rows(
    run_id: str = typer.Argument(..., help="Run to preview"),
    limit: int = typer.Option(20, "--limit", "-n", help="Rows to show"),
) -> None:
    """Show the rows a run would append, without calling Google."""
    asyncio.run(_rows_async(run_id, limit))


async def _rows_async(run_id: str, limit: int) -> None:
    from sheetsync.domains.sync import build_rows
    from sheetsync.interfaces.api.deps import get_repository

    repo = get_repository()
    try:
        await repo.initialize()
        run = await repo.get_run(run_id)
    finally:
        await repo.close()

    if run is None:
        console.print(f"[red]Error:[/red] Run not found: {run_id}")
        raise typer.Exit(1)

    values = build_rows(run)
    if not values:
        console.print(f"[yellow]Run {run_id} has no output to append.[/yellow]")
        return

    header, *body = values
    table = Table(title=f"Run {run_id} ({run.status})")
    for column in header:
        table.add_column(str(column), style="cyan")
    for row in body[:limit]:
        table.add_row(*("" if v is None else str(v) for v in row))

    console.print(table)
    if len(body) > limit:
        console.print(f"[dim]... {len(body) - limit} more rows[/dim]")


@app.command()
def sync(
    robot_id: str = typer.Argument(..., help="Robot that owns the spreadsheet"),
    run_id: str = typer.Argument(..., help="Run whose output is appended"),
) -> None:
    """Append a run's output now, retrying in the foreground if needed."""
    asyncio.run(_sync_async(robot_id, run_id))


async def _sync_async(robot_id: str, run_id: str) -> None:
    from sheetsync.domains.sync import TaskStatus
    from sheetsync.interfaces.api.deps import cleanup_services, get_sync_service, init_services

    await init_services()
    service = get_sync_service()
    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            progress.add_task("Syncing run output...", total=None)
            outcome = await service.enqueue(robot_id, run_id)
            if outcome is TaskStatus.PENDING:
                await service.drain()
    finally:
        await cleanup_services()

    task = service.registry.get(run_id)
    if outcome is None:
        console.print(f"[yellow]Skipped:[/yellow] run {run_id} was not synced (see log)")
    elif task is None:
        console.print(f"[green]Appended output of run {run_id}[/green]")
    else:
        console.print(
            f"[red]Failed:[/red] run {run_id} is {task.status.value} "
            f"after {task.retries} retries"
        )
        raise typer.Exit(1)


@app.command()
def version() -> None:
    """Show version information."""
    from sheetsync import __version__

    console.print(f"SheetSync v{__version__}")


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
