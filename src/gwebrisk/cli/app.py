# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Typer CLI application root."""

from __future__ import annotations

import asyncio
import json
import sys
from enum import StrEnum
from pathlib import Path
from typing import Annotated

import typer

from gwebrisk.cli.commands import db
from gwebrisk.cli.exit_codes import LookupExitCode, result_to_exit_code
from gwebrisk.client import LookupResult, WebRiskClient
from gwebrisk.core.config import DEFAULT_CONFIG_PATH, get_settings, load_config
from gwebrisk.core.exceptions import ConfigurationError, StorageError
from gwebrisk.core.logging import setup_logging

app = typer.Typer(
    name="gwebrisk",
    help="Look up URLs against the Google Web Risk threat lists",
    no_args_is_help=True,
)

app.add_typer(db.app, name="db", help="Local threat database")


class OutputFormat(StrEnum):
    CONSOLE = "console"
    JSON = "json"


@app.command()
def lookup(
    config: Annotated[
        Path,
        typer.Option("--config", "-c", help="JSON config file with apikey, database and urls"),
    ] = DEFAULT_CONFIG_PATH,
    fmt: Annotated[
        OutputFormat,
        typer.Option("--format", "-f", help="Output format"),
    ] = OutputFormat.CONSOLE,
) -> None:
    """Look up the configured URLs.

    Exits with the bitwise OR of 1 (a URL is unsafe), 2 (a lookup failed)
    and 4 (invalid input); 0 means every URL was looked up and is safe.
    """
    code = asyncio.run(_async_lookup(config, fmt))
    raise typer.Exit(int(code))


async def _async_lookup(config: Path, fmt: OutputFormat) -> LookupExitCode:
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)

    try:
        cfg = load_config(config)
    except ConfigurationError as exc:
        typer.echo(f"Error: {exc}", err=True)
        return LookupExitCode.INVALID

    try:
        client = await WebRiskClient.create(cfg.api_key, cfg.db_path, settings=settings)
    except (ConfigurationError, StorageError) as exc:
        typer.echo(f"Unable to initialize Web Risk client: {exc}", err=True)
        return LookupExitCode.INVALID

    async with client:
        result = await client.lookup_urls(cfg.urls)

    _output_result(result, fmt)
    return result_to_exit_code(result)


def _output_result(result: LookupResult, fmt: OutputFormat) -> None:
    if fmt == OutputFormat.JSON:
        data = {
            "verdicts": [
                {
                    "url": v.url,
                    "threats": sorted(v.threats),
                    "error": str(v.error) if v.error else None,
                }
                for v in result.verdicts
            ],
            "error": str(result.error) if result.error else None,
        }
        sys.stdout.write(json.dumps(data, indent=2) + "\n")
        return

    for verdict in result.verdicts:
        if verdict.is_unsafe:
            typer.echo(f"{verdict.url} is unsafe: {', '.join(sorted(verdict.threats))}")
        if verdict.error is not None and verdict.error is not result.error:
            typer.echo(f"Lookup error for {verdict.url}: {verdict.error}", err=True)
    if result.error is not None:
        typer.echo(f"Lookup error: {result.error}", err=True)


@app.command()
def sync(
    config: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="JSON config file supplying apikey and database"),
    ] = None,
    db_path: Annotated[
        Path | None,
        typer.Option("--db", help="Database file (defaults to GWEBRISK_DB_PATH)"),
    ] = None,
    force: Annotated[
        bool,
        typer.Option("--force", help="Retry failed lists now instead of waiting out their backoff"),
    ] = False,
) -> None:
    """Run one synchronization pass of the local threat database."""
    asyncio.run(_async_sync(config, db_path, force=force))


async def _async_sync(config: Path | None, db_path: Path | None, *, force: bool) -> None:
    from rich.console import Console
    from rich.table import Table

    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)

    api_key: str | None = None
    try:
        if config is not None:
            cfg = load_config(config)
            api_key = cfg.api_key
            db_path = db_path or cfg.db_path
        client = await WebRiskClient.create(
            api_key, db_path, settings=settings, initial_sync=False
        )
    except (ConfigurationError, StorageError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(int(LookupExitCode.INVALID)) from exc

    async with client:
        try:
            report = await client.sync_once(force=force)
        except StorageError as exc:
            typer.echo(f"Error: {exc}", err=True)
            raise typer.Exit(1) from exc

    console = Console()
    table = Table(title="Synchronization")
    table.add_column("List", style="bold")
    table.add_column("Outcome")
    table.add_column("Entries", justify="right")
    table.add_column("Next sync")
    table.add_column("Error")
    for r in report.results:
        table.add_row(
            str(r.threat_list),
            str(r.outcome),
            str(r.entries),
            r.next_sync_at.isoformat() if r.next_sync_at else "-",
            r.error or "",
        )
    console.print(table)

    if report.failed:
        raise typer.Exit(int(LookupExitCode.FAILED))


@app.command()
def version() -> None:
    """Show version information."""
    from gwebrisk import __version__

    typer.echo(f"gwebrisk v{__version__}")
