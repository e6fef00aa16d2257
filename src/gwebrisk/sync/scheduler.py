# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""SyncScheduler: drives a :class:`Synchronizer` from an asyncio background task.

The task sleeps until the earliest list is due (never longer than the
check interval, never shorter than one second), then runs one
synchronization pass.  Hosts that already own a timer can call
:meth:`Synchronizer.sync_once` directly instead.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

from gwebrisk.core.clock import Clock, utcnow
from gwebrisk.sync.synchronizer import SyncReport, Synchronizer

logger = logging.getLogger("gwebrisk.sync.scheduler")

_CHECK_INTERVAL_SECONDS = 60.0
_MIN_SLEEP_SECONDS = 1.0


class SyncScheduler:
    """Asyncio timer that invokes ``sync_once`` whenever a list falls due."""

    def __init__(
        self,
        synchronizer: Synchronizer,
        *,
        check_interval: float = _CHECK_INTERVAL_SECONDS,
        clock: Clock | None = None,
    ) -> None:
        self._synchronizer = synchronizer
        self._check_interval = check_interval
        self._clock = clock or utcnow
        self._task: asyncio.Task[None] | None = None
        self._running = False
        self.last_report: SyncReport | None = None

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the background synchronization loop."""
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._loop())
        logger.info("Sync scheduler started (interval=%ss)", self._check_interval)

    async def stop(self) -> None:
        """Stop the loop; an in-flight pass is cancelled."""
        self._running = False
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        logger.info("Sync scheduler stopped")

    async def _loop(self) -> None:
        while self._running:
            try:
                await self._tick()
            except Exception:
                logger.exception("Threat list synchronization pass failed")
            await asyncio.sleep(self.seconds_until_due())

    async def _tick(self) -> None:
        self.last_report = await self._synchronizer.sync_once()
        for result in self.last_report.failed:
            logger.debug("List %s not updated: %s", result.threat_list, result.error)

    def seconds_until_due(self) -> float:
        """How long the loop sleeps before the next pass."""
        due = self._synchronizer.next_due()
        if due is None:
            return _MIN_SLEEP_SECONDS
        wait = (due - self._clock()).total_seconds()
        return min(max(wait, _MIN_SLEEP_SECONDS), self._check_interval)
