# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Public SDK interface for one-shot URL lookups.

Usage::

    from gwebrisk import lookup, lookup_sync

    # Synchronous (blocking)
    result = lookup_sync(["http://example.com/"], api_key="...", db_path="webrisk.db")
    for verdict in result.verdicts:
        print(verdict.url, sorted(verdict.threats))

    # Async
    result = await lookup(urls, api_key="...")
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from pathlib import Path

from gwebrisk.client import LookupResult, WebRiskClient
from gwebrisk.core.config import Settings

logger = logging.getLogger("gwebrisk.sdk")


async def lookup(
    urls: Iterable[str],
    *,
    api_key: str | None = None,
    db_path: Path | str | None = None,
    server_url: str | None = None,
    settings: Settings | None = None,
) -> LookupResult:
    """Open a client, synchronize it if stale, and classify *urls*.

    Parameters
    ----------
    urls:
        The URLs to look up, in any form a browser would accept.
    api_key:
        Web Risk API key; falls back to ``GWEBRISK_API_KEY``.
    db_path:
        Location of the local threat database; falls back to
        ``GWEBRISK_DB_PATH``.
    server_url:
        Override for the Web Risk service host.
    settings:
        Optional ``Settings`` override; falls back to ``get_settings()``.

    Returns
    -------
    LookupResult
        One verdict per URL, in input order, plus any aggregate error.
    """
    client = await WebRiskClient.create(
        api_key,
        db_path,
        server_url=server_url,
        settings=settings,
    )
    async with client:
        return await client.lookup_urls(urls)


def lookup_sync(
    urls: Iterable[str],
    *,
    api_key: str | None = None,
    db_path: Path | str | None = None,
    server_url: str | None = None,
    settings: Settings | None = None,
) -> LookupResult:
    """Synchronous wrapper around :func:`lookup`.

    Calls ``asyncio.run()`` internally, so it must **not** be called from
    within an already-running event loop.
    """
    return asyncio.run(
        lookup(
            urls,
            api_key=api_key,
            db_path=db_path,
            server_url=server_url,
            settings=settings,
        )
    )
