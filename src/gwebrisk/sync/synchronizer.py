# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Threat list synchronization against the Web Risk ``computeDiff`` endpoint.

The synchronizer owns no thread or timer.  Each :meth:`Synchronizer.sync_once`
call fetches every list whose schedule has elapsed, applies the response to
the database and reschedules the list from the server's recommendation or,
after a failure, from an exponential backoff.  Hosts drive it from a timer
(:class:`~gwebrisk.sync.scheduler.SyncScheduler`), a cron job, or by hand.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import StrEnum

from gwebrisk.api.client import WebRiskAPI
from gwebrisk.core.clock import Clock, utcnow
from gwebrisk.core.constants import (
    DEFAULT_BACKOFF_BASE,
    DEFAULT_BACKOFF_CAP,
    DEFAULT_SYNC_JITTER,
    DEFAULT_UPDATE_PERIOD,
    CompressionType,
    ResponseType,
)
from gwebrisk.core.exceptions import ChecksumMismatchError, GWebRiskError, TransportError
from gwebrisk.database.store import ThreatDatabase
from gwebrisk.models.threat import ThreatList
from gwebrisk.models.webrisk import ComputeThreatListDiffResponse
from gwebrisk.sync.backoff import next_backoff

logger = logging.getLogger("gwebrisk.sync.synchronizer")


class SyncState(StrEnum):
    IDLE = "idle"
    FETCHING = "fetching"
    APPLYING = "applying"
    ERROR = "error"


class SyncOutcome(StrEnum):
    UPDATED = "updated"
    RESET = "reset"
    UNCHANGED = "unchanged"
    SKIPPED = "skipped"
    FAILED = "failed"
    INVALID = "invalid"


@dataclass
class SyncSchedule:
    """When a list may next be fetched, and its current failure streak."""

    next_sync_at: datetime | None = None
    failures: int = 0
    last_wait: float | None = None


@dataclass
class ListSyncResult:
    threat_list: ThreatList
    outcome: SyncOutcome
    entries: int = 0
    next_sync_at: datetime | None = None
    error: str | None = None


@dataclass
class SyncReport:
    results: list[ListSyncResult] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return any(
            r.outcome in (SyncOutcome.UPDATED, SyncOutcome.RESET, SyncOutcome.UNCHANGED)
            for r in self.results
        )

    @property
    def failed(self) -> list[ListSyncResult]:
        return [r for r in self.results if r.outcome in (SyncOutcome.FAILED, SyncOutcome.INVALID)]

    @property
    def fetched(self) -> int:
        return sum(1 for r in self.results if r.outcome != SyncOutcome.SKIPPED)


class Synchronizer:
    """Keeps a :class:`ThreatDatabase` current with the remote service.

    Args:
        database: The database to update.
        api: Client for the remote service.
        clock: Source of the current time (UTC).
        rng: Random source for jitter.
        default_wait: Seconds between fetches when the server gives no
            recommendation.
        jitter: Upper bound of the random seconds added to each
            server-instructed wait.
        backoff_base: First retry wait after a failure.
        backoff_cap: Longest retry wait.
        timeout: Overall seconds allowed for one fetch, ``None`` to rely
            on the HTTP client's timeout alone.
    """

    def __init__(
        self,
        database: ThreatDatabase,
        api: WebRiskAPI,
        *,
        clock: Clock | None = None,
        rng: random.Random | None = None,
        default_wait: float = DEFAULT_UPDATE_PERIOD,
        jitter: float = DEFAULT_SYNC_JITTER,
        backoff_base: float = DEFAULT_BACKOFF_BASE,
        backoff_cap: float = DEFAULT_BACKOFF_CAP,
        max_diff_entries: int = 0,
        max_database_entries: int = 0,
        compressions: Iterable[CompressionType] = (CompressionType.RAW, CompressionType.RICE),
        timeout: float | None = None,
    ) -> None:
        self._db = database
        self._api = api
        self._clock = clock or utcnow
        self._rng = rng or random.Random()
        self._default_wait = default_wait
        self._jitter = jitter
        self._backoff_base = backoff_base
        self._backoff_cap = backoff_cap
        self._max_diff_entries = max_diff_entries
        self._max_database_entries = max_database_entries
        self._compressions = tuple(compressions)
        self._timeout = timeout
        self._pass_lock = asyncio.Lock()

        self._schedules = {
            tl: SyncSchedule(next_sync_at=database.list_state(tl).next_sync_at)
            for tl in database.threat_lists
        }
        self._states = {tl: SyncState.IDLE for tl in database.threat_lists}

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def state(self, threat_list: ThreatList) -> SyncState:
        return self._states[threat_list]

    def schedule(self, threat_list: ThreatList) -> SyncSchedule:
        return self._schedules[threat_list]

    def next_due(self) -> datetime | None:
        """Earliest time any list is due; ``None`` if one is due right away."""
        times = [s.next_sync_at for s in self._schedules.values()]
        if any(t is None for t in times):
            return None
        return min(t for t in times if t is not None)

    # ------------------------------------------------------------------
    # Synchronization
    # ------------------------------------------------------------------

    async def sync_once(self, *, force: bool = False) -> SyncReport:
        """Fetch and apply updates for every list whose schedule has elapsed.

        Args:
            force: Retry lists that are backing off after a failure without
                waiting.  Waits requested by the server are still honored.

        Raises:
            StorageError: If the updated database cannot be persisted.  The
                in-memory state remains valid and lookups keep working.
        """
        async with self._pass_lock:
            now = self._clock()
            report = SyncReport()
            for tl in self._db.threat_lists:
                schedule = self._schedules[tl]
                due = (
                    schedule.next_sync_at is None
                    or now >= schedule.next_sync_at
                    or (force and schedule.failures > 0)
                )
                if not due:
                    report.results.append(
                        ListSyncResult(
                            threat_list=tl,
                            outcome=SyncOutcome.SKIPPED,
                            entries=len(self._db.list_state(tl).prefixes),
                            next_sync_at=schedule.next_sync_at,
                        )
                    )
                    continue
                report.results.append(await self._sync_list(tl))

            if report.changed:
                await self._db.persist()
            return report

    async def _sync_list(self, tl: ThreatList) -> ListSyncResult:
        self._states[tl] = SyncState.FETCHING
        token = self._db.version_token(tl)
        try:
            response = await self._fetch(tl, token)
        except (TransportError, TimeoutError) as exc:
            return self._fail(tl, exc)

        self._states[tl] = SyncState.APPLYING
        try:
            outcome = self._apply(tl, token, response)
        except ChecksumMismatchError as exc:
            return self._fail(tl, exc, integrity=True)
        except TransportError as exc:
            return self._fail(tl, exc)

        now = self._clock()
        next_sync_at = now + timedelta(seconds=self._instructed_wait(now, response))
        schedule = self._schedules[tl]
        schedule.next_sync_at = next_sync_at
        schedule.failures = 0
        schedule.last_wait = None
        self._db.schedule(tl, next_sync_at)
        self._states[tl] = SyncState.IDLE

        entries = len(self._db.list_state(tl).prefixes)
        logger.info(
            "Threat list %s %s: %d prefixes, next sync at %s",
            tl,
            outcome,
            entries,
            next_sync_at.isoformat(),
            extra={"threat_list": tl},
        )
        return ListSyncResult(
            threat_list=tl,
            outcome=outcome,
            entries=entries,
            next_sync_at=next_sync_at,
        )

    async def _fetch(self, tl: ThreatList, token: bytes) -> ComputeThreatListDiffResponse:
        request = self._api.compute_diff(
            tl.threat_type,
            token,
            max_diff_entries=self._max_diff_entries,
            max_database_entries=self._max_database_entries,
            compressions=self._compressions,
        )
        if self._timeout is None:
            return await request
        return await asyncio.wait_for(request, self._timeout)

    def _apply(
        self,
        tl: ThreatList,
        token: bytes,
        response: ComputeThreatListDiffResponse,
    ) -> SyncOutcome:
        if response.response_type not in (ResponseType.DIFF, ResponseType.RESET):
            msg = f"Unexpected response type {response.response_type} for {tl}"
            raise TransportError(msg)

        try:
            additions = response.added_prefixes()
            removals = response.removed_indices()
        except ValueError as exc:
            self._db.invalidate(tl)
            msg = f"Undecodable update for {tl}: {exc}"
            raise ChecksumMismatchError(msg) from exc

        new_token = response.new_version_token or token
        if response.is_reset:
            self._db.apply_diff(
                tl, additions, (), new_token, response.expected_checksum(), reset=True
            )
            return SyncOutcome.RESET

        if not additions and not removals and new_token == token:
            self._db.mark_updated(tl)
            return SyncOutcome.UNCHANGED

        self._db.apply_diff(tl, additions, removals, new_token, response.expected_checksum())
        return SyncOutcome.UPDATED

    def _instructed_wait(self, now: datetime, response: ComputeThreatListDiffResponse) -> float:
        wait = self._default_wait
        if response.recommended_next_diff is not None:
            wait = max((response.recommended_next_diff - now).total_seconds(), 0.0)
        return wait + self._rng.uniform(0, self._jitter)

    def _fail(
        self,
        tl: ThreatList,
        exc: BaseException,
        *,
        integrity: bool = False,
    ) -> ListSyncResult:
        self._states[tl] = SyncState.ERROR
        schedule = self._schedules[tl]
        schedule.failures += 1

        if integrity and schedule.failures == 1:
            # The cleared version token makes the next fetch a full resync.
            delay = 0.0
        else:
            backoff = next_backoff(
                schedule.failures,
                schedule.last_wait,
                base=self._backoff_base,
                cap=self._backoff_cap,
            )
            schedule.last_wait = backoff.wait
            delay = backoff.delay(self._rng.random(), self._backoff_cap)

        schedule.next_sync_at = self._clock() + timedelta(seconds=delay)
        reason = str(exc) if isinstance(exc, GWebRiskError) else f"timed out ({type(exc).__name__})"
        logger.warning(
            "Sync of %s failed (attempt %d), retrying at %s: %s",
            tl,
            schedule.failures,
            schedule.next_sync_at.isoformat(),
            reason,
            extra={"threat_list": tl},
        )
        self._states[tl] = SyncState.IDLE
        return ListSyncResult(
            threat_list=tl,
            outcome=SyncOutcome.INVALID if integrity else SyncOutcome.FAILED,
            entries=len(self._db.list_state(tl).prefixes),
            next_sync_at=schedule.next_sync_at,
            error=reason,
        )
