from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_cycle, render_pending, render_result
from logging_config import configure_logging
from services.exceptions import LogParseError, LogSourceError, ResultStoreError
from services.formatter import format_brandings
from services.parser import parse_log_file
from services.poller import Poller
from services.processor import build_default_processor
from settings import get_settings


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Grade sensor calibration logs and inspect the grading service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Grading API base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for each API request.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, request_timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("grade")
def grade_command(
    file: Path = typer.Argument(..., dir_okay=False, help="Path to a sensor log file."),
) -> None:
    """Grade a local log file and print the brandings as JSON."""
    try:
        parsed = parse_log_file(file)
    except LogParseError as exc:
        typer.secho(f"Error processing log file: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(format_brandings(parsed.brandings))


@app.command("run")
def run_command(
    once: bool = typer.Option(
        False,
        "--once",
        help="Run a single poll cycle immediately and exit.",
    ),
    interval: Optional[float] = typer.Option(
        None,
        "--interval",
        help="Seconds between poll cycles (defaults to POLL_INTERVAL_SECONDS or 10).",
    ),
) -> None:
    """Poll the log directory and grade new files until interrupted."""
    configure_logging()
    try:
        processor = build_default_processor()
        processor.store.ping()
    except (LogSourceError, ResultStoreError) as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc

    poll_interval = interval if interval is not None else get_settings().poll_interval
    poller = Poller(processor, interval=poll_interval)
    if once:
        result = poller.run_cycle()
        if result is None:
            raise typer.Exit(code=1)
        render_cycle(result.model_dump(mode="json"))
        return

    typer.echo(f"Polling every {poll_interval}s, press Ctrl+C to stop.")
    try:
        poller.run()
    except KeyboardInterrupt:
        poller.stop()
        typer.echo("Stopped.")


@app.command("pending")
def pending_command(ctx: typer.Context) -> None:
    """List log files the service has not graded yet."""
    state = _get_state(ctx)
    render_pending(state.client.get_pending())


@app.command("process")
def process_command(ctx: typer.Context) -> None:
    """Ask the service to grade the oldest pending log file now."""
    state = _get_state(ctx)
    render_cycle(state.client.process_next())


@app.command("result")
def result_command(
    ctx: typer.Context,
    file_name: str = typer.Argument(..., help="Log file name as listed in the log directory."),
) -> None:
    """Fetch the stored brandings or error for a log file."""
    state = _get_state(ctx)
    render_result(state.client.get_result(file_name))
