from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from importlib.metadata import PackageNotFoundError, version
from typing import Optional

import httpx
import typer

from cli.client import OutageApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_error, render_report
from logging_config import configure_logging
from models.errors import SyncError
from models.timestamps import parse_timestamp
from services.backoff import BackoffPolicy
from services.synchronizer import OutageSynchronizer, SyncReport
from settings import Settings, get_settings

logger = logging.getLogger(__name__)

APP_NAME = "Outage Sync"
DISTRIBUTION_NAME = "outage-sync"


@dataclass
class CLIState:
    settings: Settings


app = typer.Typer(
    help="Synchronize device outages for a site with the outage-tracking API.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


def app_version() -> str:
    try:
        return version(DISTRIBUTION_NAME)
    except PackageNotFoundError:
        return "version unknown"


def _version_callback(value: bool) -> None:
    if not value:
        return
    typer.echo(f"{APP_NAME}/{app_version()}")
    raise typer.Exit()


def _validate_log_level(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    level = value.strip().upper()
    if not isinstance(logging.getLevelName(level), int):
        raise typer.BadParameter(f"Unknown log level {value!r}.")
    return level


def _validate_site_id(value: Optional[str]) -> Optional[str]:
    if value is not None and not value.strip():
        raise typer.BadParameter("Site ID is not valid.")
    return value


def _validate_api_key(value: Optional[str]) -> Optional[str]:
    if value is not None and not value.strip():
        raise typer.BadParameter("The API key is not valid.")
    return value


def _validate_base_url(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    try:
        url = httpx.URL(value.strip())
    except httpx.InvalidURL as exc:
        raise typer.BadParameter("Base URI is not valid.") from exc
    if url.scheme not in {"http", "https"} or not url.host:
        raise typer.BadParameter("Base URI is not valid.")
    return value


def _parse_cutoff(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    try:
        return parse_timestamp(value)
    except ValueError as exc:
        raise typer.BadParameter("The cutoff format is not valid.") from exc


@app.callback()
def main(
    ctx: typer.Context,
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        callback=_validate_log_level,
        help="Logging level (defaults to LOG_LEVEL env or INFO).",
    ),
    show_version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Display version information and exit.",
    ),
) -> None:
    """Entry point for the CLI."""
    configure_logging(log_level)
    ctx.obj = CLIState(settings=get_settings())


async def run_sync(config: CLIConfig, settings: Settings) -> SyncReport:
    policy = BackoffPolicy(
        first_delay=settings.retry_first_delay,
        factor=settings.retry_factor,
        max_retries=settings.retry_max_retries,
    )
    async with OutageApiClient(
        config.base_url,
        config.api_key,
        timeout=settings.request_timeout,
        policy=policy,
    ) as client:
        synchronizer = OutageSynchronizer(client)
        return await synchronizer.synchronize(config.site_id, config.cutoff)


@app.command("sync")
def sync_command(
    ctx: typer.Context,
    site_id: Optional[str] = typer.Option(
        None,
        "--site-id",
        "-s",
        callback=_validate_site_id,
        help="The ID of the site to query and update (defaults to OUTAGE_SITE_ID env or norwich-pear-tree).",
    ),
    api_key: Optional[str] = typer.Option(
        None,
        "--api-key",
        "-a",
        callback=_validate_api_key,
        help="The key used to authorize API requests (defaults to OUTAGE_API_KEY env).",
    ),
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        callback=_validate_base_url,
        help="Base URL of the outage API (defaults to API_BASE_URL env).",
    ),
    cutoff: Optional[str] = typer.Option(
        None,
        "--cutoff",
        "-c",
        help="Outages that begin before this ISO-8601 timestamp are excluded.",
    ),
) -> None:
    """Fetch outages, join them with the site directory and submit the result."""
    state = _get_state(ctx)
    cutoff_value = _parse_cutoff(cutoff)
    try:
        config = load_config(
            api_key=api_key,
            base_url=base_url,
            site_id=site_id,
            cutoff=cutoff_value,
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    try:
        report = asyncio.run(run_sync(config, state.settings))
    except SyncError as exc:
        logger.debug("Synchronization failure details.", exc_info=exc)
        logger.error(
            "Site outage update failed: %s",
            exc.message,
            extra={"site_id": config.site_id, "kind": exc.kind.value},
        )
        render_error(exc)
        raise typer.Exit(code=1)

    logger.info("Updated site outages.", extra={"site_id": config.site_id})
    render_report(report)
