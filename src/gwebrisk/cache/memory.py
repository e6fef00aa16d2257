# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""In-memory LRU cache of ``hashes:search`` results with expiry.

Positive entries are keyed by full hash and record, per threat type, when
the server's verdict expires.  Negative entries are keyed by the searched
prefix: until they expire, any full hash sharing that prefix and absent
from the positive store is safe.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import StrEnum

from gwebrisk.core.clock import Clock, utcnow
from gwebrisk.core.constants import (
    DEFAULT_CACHE_MAX_ENTRIES,
    DEFAULT_MAX_CACHE_TTL,
    DEFAULT_NEGATIVE_CACHE_TTL,
    MAX_HASH_PREFIX_LENGTH,
    MIN_HASH_PREFIX_LENGTH,
    ThreatType,
)
from gwebrisk.core.logging import short_hex
from gwebrisk.models.webrisk import SearchHashesResponse

logger = logging.getLogger("gwebrisk.cache.memory")


class CacheResult(StrEnum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    MISS = "miss"


@dataclass(frozen=True)
class CacheLookup:
    result: CacheResult
    threats: frozenset[ThreatType] = field(default_factory=frozenset)


class _Entry:
    """Threat types of one full hash, each with its own expiry."""

    __slots__ = ("expires",)

    def __init__(self, expires: dict[ThreatType, datetime]) -> None:
        self.expires = expires

    def live(self, now: datetime) -> frozenset[ThreatType]:
        return frozenset(t for t, at in self.expires.items() if now < at)

    def is_expired(self, now: datetime) -> bool:
        return all(now >= at for at in self.expires.values())


class FullHashCache:
    """Thread-safe positive/negative cache for full-hash search results.

    Args:
        max_entries: Upper bound of each store.  When exceeded the least
            recently used entry is evicted.
        default_negative_ttl: Seconds a negative entry lives when the
            server sends no ``negativeExpireTime``.
        max_ttl: Upper bound on any entry's lifetime, in seconds.
        clock: Source of the current time (UTC).
    """

    def __init__(
        self,
        max_entries: int = DEFAULT_CACHE_MAX_ENTRIES,
        *,
        default_negative_ttl: float = DEFAULT_NEGATIVE_CACHE_TTL,
        max_ttl: float = DEFAULT_MAX_CACHE_TTL,
        clock: Clock | None = None,
    ) -> None:
        self._positive: OrderedDict[bytes, _Entry] = OrderedDict()
        self._negative: OrderedDict[bytes, datetime] = OrderedDict()
        self._max_entries = max_entries
        self._default_negative_ttl = timedelta(seconds=default_negative_ttl)
        self._max_ttl = timedelta(seconds=max_ttl)
        self._clock = clock or utcnow
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def lookup(self, full_hash: bytes) -> CacheLookup:
        """Classify *full_hash* from cached search results."""
        now = self._clock()
        with self._lock:
            entry = self._positive.get(full_hash)
            if entry is not None:
                threats = entry.live(now)
                if threats:
                    self._positive.move_to_end(full_hash)
                    self.hits += 1
                    logger.debug("Positive cache hit for %s", short_hex(full_hash))
                    return CacheLookup(CacheResult.POSITIVE, threats)
                del self._positive[full_hash]

            for length in range(MIN_HASH_PREFIX_LENGTH, MAX_HASH_PREFIX_LENGTH + 1):
                prefix = full_hash[:length]
                expires_at = self._negative.get(prefix)
                if expires_at is None:
                    continue
                if now >= expires_at:
                    del self._negative[prefix]
                    continue
                self._negative.move_to_end(prefix)
                self.hits += 1
                logger.debug("Negative cache hit for %s", short_hex(full_hash))
                return CacheLookup(CacheResult.NEGATIVE)

            self.misses += 1
            return CacheLookup(CacheResult.MISS)

    def size(self) -> int:
        with self._lock:
            return len(self._positive) + len(self._negative)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def update(self, prefix: bytes, response: SearchHashesResponse) -> None:
        """Record the outcome of searching *prefix*."""
        now = self._clock()
        ceiling = now + self._max_ttl

        positives: dict[bytes, dict[ThreatType, datetime]] = {}
        for threat in response.threats:
            expires = positives.setdefault(threat.hash, {})
            for threat_type in threat.threat_types:
                expires[threat_type] = min(threat.expire_time, ceiling)

        if response.negative_expire_time is not None:
            negative_until = min(response.negative_expire_time, ceiling)
        else:
            negative_until = min(now + self._default_negative_ttl, ceiling)

        with self._lock:
            for full_hash, expires in positives.items():
                if not expires:
                    continue
                self._positive[full_hash] = _Entry(expires)
                self._positive.move_to_end(full_hash)
            self._negative[prefix] = negative_until
            self._negative.move_to_end(prefix)
            self._evict()

        logger.debug(
            "Cached search for %s: %d full hash(es), negative until %s",
            short_hex(prefix),
            len(positives),
            negative_until.isoformat(),
        )

    def purge(self) -> int:
        """Drop every expired entry; return how many were removed."""
        now = self._clock()
        with self._lock:
            stale = [k for k, v in self._positive.items() if v.is_expired(now)]
            for k in stale:
                del self._positive[k]
            stale_negative = [k for k, at in self._negative.items() if now >= at]
            for k in stale_negative:
                del self._negative[k]
        return len(stale) + len(stale_negative)

    def clear(self) -> int:
        with self._lock:
            count = len(self._positive) + len(self._negative)
            self._positive.clear()
            self._negative.clear()
        return count

    def _evict(self) -> None:
        # Caller holds the lock.
        while len(self._positive) > self._max_entries:
            self._positive.popitem(last=False)
        while len(self._negative) > self._max_entries:
            self._negative.popitem(last=False)
