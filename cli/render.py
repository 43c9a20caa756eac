from __future__ import annotations

from typing import Any, Iterable

import typer

from models.errors import SyncError
from models.timestamps import format_timestamp
from services.synchronizer import SyncReport


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_report(report: SyncReport) -> None:
    typer.secho("Site outages updated.", fg=typer.colors.GREEN)
    typer.echo()
    echo_heading("Summary")
    echo_key_values(
        [
            ("site_id", report.site_id),
            ("cutoff", format_timestamp(report.cutoff)),
            ("fetched", report.fetched),
            ("submitted", report.submitted),
            ("skipped_before_cutoff", report.skipped_before_cutoff),
            ("skipped_unknown_device", report.skipped_unknown_device),
        ]
    )


def render_error(error: SyncError) -> None:
    typer.secho(f"Error: {error.message}", fg=typer.colors.RED, err=True)
