"""CLI entry point using typer."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from histdb import __version__
from histdb.config import CONFIG_FILE, AppConfig, load_config, save_config
from histdb.errors import HistoryError
from histdb.services.recorder import HistoryRecorder
from histdb.storage.models import HistoryEntry
from histdb.utils.formatting import format_duration, format_entry, format_exit_code, format_timestamp

app = typer.Typer(
    name="histdb",
    help="Record shell command history in a local SQLite store.",
    add_completion=False,
)
console = Console()


def _setup_logging(config: AppConfig) -> None:
    handlers: list[logging.Handler] = []
    if config.logging.file:
        log_path = Path(config.logging.file).expanduser().resolve()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(str(log_path)))
    else:
        handlers.append(logging.StreamHandler(sys.stderr))

    logging.basicConfig(
        level=getattr(logging, config.logging.level.upper(), logging.WARNING),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=handlers,
        force=True,
    )


def _fail(error: HistoryError) -> typer.Exit:
    console.print(f"[red]{escape(error.message)}[/red]")
    return typer.Exit(error.exit_code)


@app.callback()
def main(
    ctx: typer.Context,
    db: str = typer.Option(None, "--db", help="Path to the history database"),
) -> None:
    """Record shell command history in a local SQLite store."""
    config = load_config()
    if db:
        config.storage.db_path = db
    _setup_logging(config)
    ctx.obj = config


@app.command()
def init(ctx: typer.Context) -> None:
    """Create the history database."""
    recorder = HistoryRecorder(ctx.obj)
    try:
        path = asyncio.run(recorder.initialize())
    except HistoryError as e:
        raise _fail(e)
    console.print(f"[green]Initialized {escape(str(path))}[/green]")


@app.command(context_settings={"allow_interspersed_args": False, "ignore_unknown_options": True})
def start(
    ctx: typer.Context,
    command: list[str] = typer.Argument(..., help="Command words"),
    host: str = typer.Option(..., "--host", help="Host the command runs on"),
    pwd: str = typer.Option(..., "--pwd", help="Working directory of the command"),
    at: int = typer.Option(None, "--time", help="Start time in unix seconds (default: now)"),
) -> None:
    """Record a command start and print its execution id."""
    recorder = HistoryRecorder(ctx.obj)
    try:
        execution_id = asyncio.run(recorder.start(host, pwd, command, start_time=at))
    except HistoryError as e:
        raise _fail(e)
    typer.echo(execution_id)


@app.command()
def end(
    ctx: typer.Context,
    execution_id: int = typer.Option(..., "--id", help="Execution id printed by start"),
    exit_code: int = typer.Option(..., "--exit-code", help="Exit status of the command"),
    at: int = typer.Option(None, "--time", help="End time in unix seconds (default: now)"),
) -> None:
    """Record a command end."""
    recorder = HistoryRecorder(ctx.obj)
    try:
        asyncio.run(recorder.end(execution_id, exit_code, end_time=at))
    except HistoryError as e:
        raise _fail(e)


@app.command("list")
def list_history(
    ctx: typer.Context,
    limit: int = typer.Option(None, "--limit", "-n", help="Maximum number of rows"),
    newest_first: bool = typer.Option(False, "--newest-first", help="Show the most recent commands first"),
    table: bool = typer.Option(False, "--table", help="Render as a table"),
) -> None:
    """List recorded commands."""
    recorder = HistoryRecorder(ctx.obj)

    async def collect() -> list[HistoryEntry]:
        return [entry async for entry in recorder.history(newest_first=newest_first or None, limit=limit)]

    async def stream() -> None:
        async for entry in recorder.history(newest_first=newest_first or None, limit=limit):
            typer.echo(format_entry(entry))

    try:
        if not table:
            asyncio.run(stream())
            return
        entries = asyncio.run(collect())
    except HistoryError as e:
        raise _fail(e)

    history_table = Table(title="History")
    history_table.add_column("ID", justify="right", style="cyan")
    history_table.add_column("Exit", justify="right")
    history_table.add_column("Started")
    history_table.add_column("Duration", justify="right")
    history_table.add_column("Host")
    history_table.add_column("Directory")
    history_table.add_column("Command", style="green")

    for entry in entries:
        exit_text = format_exit_code(entry.exit_code)
        if entry.exit_code:
            exit_text = f"[red]{exit_text}[/red]"
        elif entry.running:
            exit_text = f"[yellow]{exit_text}[/yellow]"
        history_table.add_row(
            str(entry.execution_id),
            exit_text,
            format_timestamp(entry.start_time),
            format_duration(entry.duration),
            escape(entry.host),
            escape(entry.directory),
            escape(entry.command),
        )

    console.print(history_table)


@app.command()
def config(
    key: str = typer.Argument(None, help="Config key (e.g., storage.db_path)"),
    value: str = typer.Argument(None, help="New value"),
) -> None:
    """View or modify configuration."""
    cfg = load_config()

    if key is None:
        # Show all config
        table = Table(title="Configuration")
        table.add_column("Key", style="cyan")
        table.add_column("Value", style="green")

        table.add_row("storage.db_path", cfg.storage.db_path)
        table.add_row("storage.busy_timeout", str(cfg.storage.busy_timeout))
        table.add_row("logging.level", cfg.logging.level)
        table.add_row("logging.file", cfg.logging.file or "(stderr)")
        table.add_row("display.newest_first", str(cfg.display.newest_first))
        table.add_row("display.limit", str(cfg.display.limit) if cfg.display.limit else "all")

        console.print(table)
        return

    if value is None:
        console.print("[red]Usage: histdb config <key> <value>[/red]")
        raise typer.Exit(1)

    # Set config value
    parts = key.split(".")
    if len(parts) != 2:
        console.print("[red]Key format: section.key (e.g., storage.db_path)[/red]")
        raise typer.Exit(1)

    section, attr = parts
    section_map = {"storage": cfg.storage, "logging": cfg.logging, "display": cfg.display}

    if section not in section_map:
        console.print(f"[red]Unknown section: {escape(section)}[/red]")
        raise typer.Exit(1)

    obj = section_map[section]
    if not hasattr(obj, attr):
        console.print(f"[red]Unknown key: {escape(key)}[/red]")
        raise typer.Exit(1)

    # Type coercion
    current = getattr(obj, attr)
    try:
        if isinstance(current, bool):
            typed_value = value.lower() in ("true", "1", "yes")
        elif isinstance(current, int):
            typed_value = int(value)
        elif isinstance(current, float):
            typed_value = float(value)
        else:
            typed_value = value
    except ValueError:
        console.print(f"[red]Invalid value type for {escape(key)}[/red]")
        raise typer.Exit(1)

    setattr(obj, attr, typed_value)
    save_config(cfg)
    console.print(f"[green]{escape(key)} = {escape(str(typed_value))}[/green]")


@app.command()
def version() -> None:
    """Show version information."""
    console.print(f"histdb v{__version__}")
    console.print(f"Python: {sys.version.split()[0]}")
    console.print(f"Config: {CONFIG_FILE}")


if __name__ == "__main__":
    app()
