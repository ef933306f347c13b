from __future__ import annotations

from typing import Any, Dict, Iterable

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_result(payload: Dict[str, Any]) -> None:
    echo_heading("Log File Result")
    echo_key_values(
        [
            ("file_name", payload.get("file_name")),
            ("status", payload.get("status")),
        ]
    )

    typer.echo()
    error = payload.get("error")
    if error:
        echo_heading("Error")
        typer.secho(f"  {error}", fg=typer.colors.RED)
        return

    echo_heading("Brandings")
    brandings = payload.get("brandings") or {}
    if brandings:
        for name in sorted(brandings):
            typer.echo(f"  - {name}: {brandings[name]}")
    else:
        typer.echo("No sensors found.")


def render_pending(payload: Dict[str, Any]) -> None:
    echo_heading("Pending Log Files")
    files = payload.get("files") or []
    if not files:
        typer.echo("No new log files.")
        return
    for name in files:
        typer.echo(f"  - {name}")
    typer.echo()
    echo_key_values([("next", payload.get("oldest"))])


def render_cycle(payload: Dict[str, Any]) -> None:
    echo_heading("Poll Cycle")
    echo_key_values(
        [
            ("status", payload.get("status")),
            ("file_name", payload.get("file_name")),
            ("pending_count", payload.get("pending_count")),
            ("processing_ms", payload.get("processing_ms")),
        ]
    )
    if payload.get("payload"):
        typer.echo()
        typer.echo(payload["payload"])
