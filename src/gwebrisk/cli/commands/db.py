# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Local threat database commands."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import typer

app = typer.Typer()


@app.command()
def info(
    db_path: Annotated[
        Path | None,
        typer.Option("--db", help="Database file (defaults to GWEBRISK_DB_PATH)"),
    ] = None,
) -> None:
    """Show per-list entry counts, version tokens and update times."""
    asyncio.run(_show_info(db_path))


async def _show_info(db_path: Path | None) -> None:
    from rich.console import Console
    from rich.table import Table

    from gwebrisk.core.config import get_settings
    from gwebrisk.core.exceptions import StorageError
    from gwebrisk.database.store import ThreatDatabase
    from gwebrisk.models.threat import ThreatList

    settings = get_settings()
    path = db_path or settings.db_path
    lists = [ThreatList(threat_type=t) for t in settings.threat_types]
    try:
        database = await ThreatDatabase.open(path, lists)
    except StorageError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(1) from exc

    console = Console()
    table = Table(title=f"Threat database: {path}")
    table.add_column("List", style="bold")
    table.add_column("Entries", justify="right")
    table.add_column("Prefix lengths")
    table.add_column("Version token")
    table.add_column("Updated")
    table.add_column("Next sync")

    for row in database.stats():
        table.add_row(
            row["threat_list"],
            str(row["entries"]),
            ", ".join(str(n) for n in row["prefix_lengths"]) or "-",
            row["version_token"][:16] or "-",
            row["updated_at"].isoformat() if row["updated_at"] else "never",
            row["next_sync_at"].isoformat() if row["next_sync_at"] else "now",
        )
    console.print(table)

    if database.is_stale(settings.staleness_grace):
        console.print("[yellow]Database is stale; run 'gwebrisk sync'.[/yellow]")
