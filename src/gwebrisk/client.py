# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Lookup client: classifies URLs against the local database and the remote service.

A lookup canonicalizes each URL, hashes its expressions and checks the
hashes against the local prefix database.  Hashes without a prefix hit
are safe and cost no remote call.  Hits are answered from the full-hash
cache where possible; the remaining prefixes of the whole call are
deduplicated and resolved concurrently with ``hashes:search``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path

import httpx

from gwebrisk.api.client import WebRiskAPI
from gwebrisk.cache.memory import CacheResult, FullHashCache
from gwebrisk.core.clock import Clock, utcnow
from gwebrisk.core.config import Settings, get_settings
from gwebrisk.core.constants import (
    DEFAULT_MAX_HOST_SUFFIXES,
    DEFAULT_MAX_PATH_PREFIXES,
    DEFAULT_STALENESS_GRACE,
    ThreatType,
)
from gwebrisk.core.exceptions import (
    DatabaseStaleError,
    GWebRiskError,
    InvalidURLError,
    StorageError,
    TransportError,
)
from gwebrisk.database.store import ThreatDatabase
from gwebrisk.models.threat import ThreatList
from gwebrisk.sync.scheduler import SyncScheduler
from gwebrisk.sync.synchronizer import SyncReport, Synchronizer
from gwebrisk.urls.canonical import canonicalize
from gwebrisk.urls.hashes import generate_hashes

logger = logging.getLogger("gwebrisk.client")


@dataclass(frozen=True)
class URLVerdict:
    """Classification of one looked-up URL."""

    url: str
    threats: frozenset[ThreatType] = field(default_factory=frozenset)
    error: GWebRiskError | None = None

    @property
    def is_unsafe(self) -> bool:
        return bool(self.threats)

    @property
    def is_safe(self) -> bool:
        return self.error is None and not self.threats


@dataclass
class LookupResult:
    """Per-URL verdicts, in input order, and the aggregate error of the call."""

    verdicts: list[URLVerdict] = field(default_factory=list)
    error: GWebRiskError | None = None

    @property
    def threats(self) -> list[frozenset[ThreatType]]:
        return [v.threats for v in self.verdicts]

    @property
    def unsafe(self) -> list[URLVerdict]:
        return [v for v in self.verdicts if v.is_unsafe]


@dataclass
class LookupStats:
    """How looked-up URLs were answered.

    Each URL is counted once, by the furthest source it needed: the local
    database alone, the full-hash cache, or the remote service.
    """

    queries_by_database: int = 0
    queries_by_cache: int = 0
    queries_by_api: int = 0
    queries_failed: int = 0


class _Source(IntEnum):
    DATABASE = 0
    CACHE = 1
    API = 2


class WebRiskClient:
    """Thread-safe URL lookup client backed by a local threat database.

    Prefer :meth:`create`, which wires every component from
    :class:`~gwebrisk.core.config.Settings`.

    Args:
        database: The local threat database.
        api: Client for the remote service.
        cache: Full-hash cache; a default one is created when omitted.
        synchronizer: Keeps *database* current; created when omitted.
        threat_types: Types requested from ``hashes:search`` and reported
            to callers; defaults to the database's subscribed lists.
        max_host_suffixes: Host suffixes expanded per URL.
        max_path_prefixes: Path prefixes expanded per URL.
        staleness_grace: Seconds past a list's scheduled sync after which
            lookups fail with :class:`DatabaseStaleError`.
        clock: Source of the current time (UTC).
    """

    def __init__(
        self,
        database: ThreatDatabase,
        api: WebRiskAPI,
        *,
        cache: FullHashCache | None = None,
        synchronizer: Synchronizer | None = None,
        threat_types: Iterable[ThreatType] | None = None,
        max_host_suffixes: int = DEFAULT_MAX_HOST_SUFFIXES,
        max_path_prefixes: int = DEFAULT_MAX_PATH_PREFIXES,
        staleness_grace: float = DEFAULT_STALENESS_GRACE,
        clock: Clock | None = None,
    ) -> None:
        self._clock = clock or utcnow
        self._db = database
        self._api = api
        self._cache = cache or FullHashCache(clock=self._clock)
        self._synchronizer = synchronizer or Synchronizer(database, api, clock=self._clock)
        if threat_types is None:
            threat_types = (tl.threat_type for tl in database.threat_lists)
        self._threat_types = tuple(dict.fromkeys(threat_types))
        self._subscribed = frozenset(self._threat_types)
        self._max_host_suffixes = max_host_suffixes
        self._max_path_prefixes = max_path_prefixes
        self._staleness_grace = staleness_grace
        self._scheduler: SyncScheduler | None = None
        self.stats = LookupStats()

    @classmethod
    async def create(
        cls,
        api_key: str | None = None,
        db_path: Path | str | None = None,
        *,
        server_url: str | None = None,
        settings: Settings | None = None,
        initial_sync: bool = True,
        background_sync: bool = False,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Clock | None = None,
    ) -> WebRiskClient:
        """Open the database at *db_path* and wire a ready-to-use client.

        Explicit arguments override the matching *settings* fields.  With
        *initial_sync* a stale database is synchronized before returning;
        with *background_sync* a :class:`SyncScheduler` keeps it current.

        Raises:
            ConfigurationError: If no API key is available.
            StorageError: If an existing database file cannot be read.
        """
        settings = settings or get_settings()
        api = WebRiskAPI(
            api_key or settings.api_key,
            server_url or settings.server_url,
            settings.request_timeout,
            transport=transport,
        )
        threat_lists = [ThreatList(threat_type=t) for t in settings.threat_types]
        try:
            database = await ThreatDatabase.open(
                db_path or settings.db_path, threat_lists, clock=clock
            )
        except Exception:
            await api.close()
            raise

        synchronizer = Synchronizer(
            database,
            api,
            clock=clock,
            default_wait=settings.update_period,
            jitter=settings.sync_jitter,
            backoff_base=settings.backoff_base,
            backoff_cap=settings.backoff_cap,
            max_diff_entries=settings.max_diff_entries,
            max_database_entries=settings.max_database_entries,
            compressions=settings.supported_compressions,
        )
        cache = FullHashCache(
            settings.cache_max_entries,
            default_negative_ttl=settings.default_negative_cache_ttl,
            max_ttl=settings.max_cache_ttl,
            clock=clock,
        )
        client = cls(
            database,
            api,
            cache=cache,
            synchronizer=synchronizer,
            threat_types=settings.threat_types,
            max_host_suffixes=settings.max_host_suffixes,
            max_path_prefixes=settings.max_path_prefixes,
            staleness_grace=settings.staleness_grace,
            clock=clock,
        )

        if initial_sync and database.is_stale(settings.staleness_grace):
            try:
                await client.sync_once()
            except StorageError as exc:
                logger.warning("Initial sync could not be persisted: %s", exc)
        if background_sync:
            await client.start_background_sync()
        return client

    async def __aenter__(self) -> WebRiskClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def close(self) -> None:
        """Stop background synchronization and release the HTTP client."""
        if self._scheduler is not None:
            await self._scheduler.stop()
            self._scheduler = None
        await self._api.close()

    # ------------------------------------------------------------------
    # Components
    # ------------------------------------------------------------------

    @property
    def database(self) -> ThreatDatabase:
        return self._db

    @property
    def cache(self) -> FullHashCache:
        return self._cache

    @property
    def synchronizer(self) -> Synchronizer:
        return self._synchronizer

    # ------------------------------------------------------------------
    # Synchronization
    # ------------------------------------------------------------------

    async def sync_once(self, *, force: bool = False) -> SyncReport:
        """Run one synchronization pass; see :meth:`Synchronizer.sync_once`."""
        return await self._synchronizer.sync_once(force=force)

    async def start_background_sync(self, check_interval: float = 60.0) -> None:
        if self._scheduler is None:
            self._scheduler = SyncScheduler(
                self._synchronizer, check_interval=check_interval, clock=self._clock
            )
        await self._scheduler.start()

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def lookup_urls(self, urls: Iterable[str]) -> LookupResult:
        """Classify each of *urls*.

        Never raises for per-URL or remote failures: an invalid URL
        carries an :class:`InvalidURLError`, URLs whose prefixes could
        not be resolved carry a :class:`TransportError`, and systemic
        failures are reported as :attr:`LookupResult.error`.
        """
        urls = list(urls)
        if self._db.is_stale(self._staleness_grace, self._clock()):
            stale = DatabaseStaleError(
                "Local threat database is stale, synchronize before looking up URLs"
            )
            self.stats.queries_failed += len(urls)
            return LookupResult([URLVerdict(u, error=stale) for u in urls], error=stale)

        threats: list[set[ThreatType]] = [set() for _ in urls]
        errors: list[GWebRiskError | None] = [None] * len(urls)
        sources = [_Source.DATABASE] * len(urls)
        pending: dict[bytes, set[tuple[int, bytes]]] = {}

        for i, raw in enumerate(urls):
            try:
                candidates = generate_hashes(
                    canonicalize(raw), self._max_host_suffixes, self._max_path_prefixes
                )
            except InvalidURLError as exc:
                errors[i] = exc
                continue

            for candidate in candidates:
                matches = self._db.lookup_prefixes(candidate.full_hash)
                if not matches:
                    continue
                cached = self._cache.lookup(candidate.full_hash)
                if cached.result is CacheResult.MISS:
                    for match in matches:
                        pending.setdefault(match.prefix, set()).add((i, candidate.full_hash))
                    continue
                sources[i] = max(sources[i], _Source.CACHE)
                threats[i].update(cached.threats & self._subscribed)

        aggregate = await self._resolve(pending, threats, errors, sources)

        verdicts = []
        for i, url in enumerate(urls):
            verdicts.append(URLVerdict(url, frozenset(threats[i]), errors[i]))
            if errors[i] is not None:
                self.stats.queries_failed += 1
            elif sources[i] is _Source.API:
                self.stats.queries_by_api += 1
            elif sources[i] is _Source.CACHE:
                self.stats.queries_by_cache += 1
            else:
                self.stats.queries_by_database += 1

        logger.debug(
            "Looked up %d URL(s): %d unsafe, %d prefix search(es)",
            len(urls),
            sum(1 for v in verdicts if v.is_unsafe),
            len(pending),
        )
        return LookupResult(verdicts, error=aggregate)

    async def _resolve(
        self,
        pending: dict[bytes, set[tuple[int, bytes]]],
        threats: list[set[ThreatType]],
        errors: list[GWebRiskError | None],
        sources: list[_Source],
    ) -> TransportError | None:
        if not pending:
            return None

        prefixes = list(pending)
        responses = await asyncio.gather(
            *(self._api.search_hashes(p, self._threat_types) for p in prefixes),
            return_exceptions=True,
        )

        failures: list[TransportError] = []
        for prefix, response in zip(prefixes, responses, strict=True):
            waiting = pending[prefix]
            if isinstance(response, BaseException):
                if not isinstance(response, TransportError):
                    raise response
                failures.append(response)
                for i, _ in waiting:
                    errors[i] = errors[i] or response
                continue

            self._cache.update(prefix, response)
            found: dict[bytes, set[ThreatType]] = {}
            for threat in response.threats:
                found.setdefault(threat.hash, set()).update(threat.threat_types)
            for i, full_hash in waiting:
                sources[i] = _Source.API
                threats[i].update(found.get(full_hash, set()) & self._subscribed)

        if not failures:
            return None
        logger.warning(
            "%d of %d hash prefix search(es) failed: %s", len(failures), len(prefixes), failures[0]
        )
        msg = f"{len(failures)} of {len(prefixes)} hash prefix searches failed: {failures[0]}"
        error = TransportError(msg, status_code=failures[0].status_code)
        error.__cause__ = failures[0]
        return error
