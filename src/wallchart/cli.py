"""Command-line interface for wallchart.

This module uses the :mod:`click` library to expose the wallpaper
generator:

* ``run``          — align to the next minute and refresh the image every minute,
* ``render``       — run a single update cycle immediately,
* ``config-check`` — validate the environment without any network calls.

Settings are read once per invocation from the environment (and a
``.env`` file in the working directory, if present).
"""

from __future__ import annotations

import asyncio
import signal
from pathlib import Path
from typing import Optional

import click
from dotenv import find_dotenv, load_dotenv

from .config import ConfigError, Settings, load_settings
from .orchestration.pipeline import SnapshotPipeline
from .orchestration.scheduler import UpdateScheduler, compute_next_boundary
from .providers.base import CandleProvider
from .providers.tinkoff import TinkoffDataProvider


@click.group()
def cli() -> None:
    """wallchart command-line interface."""
    load_dotenv(find_dotenv(usecwd=True))


def _load_settings_or_exit(output: Optional[Path] = None) -> Settings:
    """Load settings, reporting configuration errors and exiting with status 2."""
    try:
        return load_settings(output_path=output)
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        ctx = click.get_current_context()
        ctx.exit(2)


def _build_provider(settings: Settings) -> CandleProvider:
    """Construct the market data provider for the CLI.

    Factored out so tests can monkeypatch it with a fake provider.
    """
    return TinkoffDataProvider(
        token=settings.token,
        base_url=settings.base_url,
        timeout=settings.request_timeout,
    )


def _build_pipeline(settings: Settings) -> SnapshotPipeline:
    return SnapshotPipeline(_build_provider(settings), settings)


async def _serve(scheduler: UpdateScheduler) -> None:
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, scheduler.stop)
    except (NotImplementedError, RuntimeError):
        # Windows event loops: Ctrl+C surfaces as KeyboardInterrupt instead
        pass
    await scheduler.run()


@cli.command(name="run")
@click.option("--once", is_flag=True, help="Wait for the next minute, render once and exit")
@click.option(
    "--dry-run",
    is_flag=True,
    help="Print when the first update would fire and exit without waiting",
)
@click.option(
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Output PNG path (overrides WALLCHART_OUTPUT)",
)
def run_cli(once: bool, dry_run: bool, output: Optional[Path]) -> None:
    """Refresh the wallpaper at the start of every minute.

    The first update fires at the next wall-clock minute boundary and
    then every 60 seconds.  Ctrl+C stops the scheduler, abandons any
    update in progress and exits with status 0.
    """
    settings = _load_settings_or_exit(output)
    if dry_run:
        first = compute_next_boundary(None).astimezone(settings.display_tz())
        click.echo(f"First update at {first.strftime('%Y-%m-%d %H:%M:%S %Z')}")
        click.echo(f"Would write: {settings.output_path}")
        return
    pipeline = _build_pipeline(settings)
    scheduler = UpdateScheduler(pipeline.run_cycle, skip_if_busy=settings.skip_if_busy)
    try:
        if once:
            asyncio.run(scheduler.run_once())
        else:
            asyncio.run(_serve(scheduler))
    except KeyboardInterrupt:
        scheduler.stop()
    click.echo("Shutting down")


@cli.command(name="render")
@click.option(
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Output PNG path (overrides WALLCHART_OUTPUT)",
)
def render_cli(output: Optional[Path]) -> None:
    """Run one update cycle now; exits with status 1 if it fails."""
    settings = _load_settings_or_exit(output)
    pipeline = _build_pipeline(settings)
    path = asyncio.run(pipeline.run_cycle())
    if path is None:
        ctx = click.get_current_context()
        ctx.exit(1)


@cli.command(name="config-check")
def config_check() -> None:
    """Validate the configuration without contacting the market data service."""
    settings = _load_settings_or_exit()
    tz_name = settings.timezone or "system local"
    click.echo(
        f"OK: {settings.ticker}/{settings.class_code}, window {settings.history_time}, "
        f"output {settings.output_path}, timezone {tz_name}"
    )
