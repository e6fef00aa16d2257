# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Persistent, versioned store of hash-prefix sets per threat list.

Every list's state is an immutable :class:`ListState` snapshot.  Writers
build a replacement snapshot and swap the state mapping under a single
writer lock; readers grab the current mapping without locking, so a
lookup sees either the complete old list or the complete new one.

The file on disk is gzip-compressed JSON written to a temporary file and
renamed over the previous copy, so a crash mid-write leaves the last good
database in place.
"""

from __future__ import annotations

import asyncio
import contextlib
import gzip
import logging
import os
import threading
import zlib
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from pathlib import Path
from types import MappingProxyType
from typing import Any

import aiofiles
import aiofiles.os

from gwebrisk.core.clock import Clock, utcnow
from gwebrisk.core.exceptions import ChecksumMismatchError, ConfigurationError, StorageError
from gwebrisk.core.logging import short_hex
from gwebrisk.database.prefixes import HashPrefixSet
from gwebrisk.models.database import FORMAT_VERSION, DatabaseFile, StoredThreatList
from gwebrisk.models.threat import PrefixMatch, ThreatList

logger = logging.getLogger("gwebrisk.database.store")


@dataclass(frozen=True, slots=True)
class ListState:
    """Immutable snapshot of one threat list."""

    prefixes: HashPrefixSet = field(default_factory=HashPrefixSet)
    version_token: bytes = b""
    updated_at: datetime | None = None
    next_sync_at: datetime | None = None


class ThreatDatabase:
    """Local threat database shared by the synchronizer and lookups.

    Use :meth:`open` to construct one from disk.

    Args:
        path: Location of the database file.
        threat_lists: The lists this client subscribes to.
        clock: Source of the current time (UTC).
    """

    def __init__(
        self,
        path: Path | str,
        threat_lists: Iterable[ThreatList],
        *,
        clock: Clock | None = None,
    ) -> None:
        self._path = Path(path)
        self._lists = tuple(dict.fromkeys(threat_lists))
        if not self._lists:
            msg = "At least one threat list must be subscribed"
            raise ConfigurationError(msg)
        self._clock = clock or utcnow
        self._states: Mapping[ThreatList, ListState] = MappingProxyType(
            {tl: ListState() for tl in self._lists}
        )
        self._write_lock = threading.Lock()
        self._persist_lock = asyncio.Lock()

    @classmethod
    async def open(
        cls,
        path: Path | str,
        threat_lists: Iterable[ThreatList],
        *,
        clock: Clock | None = None,
    ) -> ThreatDatabase:
        """Load the database at *path*, or start empty.

        A missing or corrupt file yields empty lists with no version
        token, which makes the next synchronization fetch full lists.

        Raises:
            StorageError: If the file exists but cannot be read.
        """
        db = cls(path, threat_lists, clock=clock)
        await db._load()
        return db

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def path(self) -> Path:
        return self._path

    @property
    def threat_lists(self) -> tuple[ThreatList, ...]:
        return self._lists

    def list_state(self, threat_list: ThreatList) -> ListState:
        try:
            return self._states[threat_list]
        except KeyError:
            msg = f"Threat list {threat_list} is not subscribed"
            raise KeyError(msg) from None

    def version_token(self, threat_list: ThreatList) -> bytes:
        return self.list_state(threat_list).version_token

    def is_stale(self, grace: float, now: datetime | None = None) -> bool:
        """Return True if any list never synced or is overdue by more than *grace* seconds."""
        now = now or self._clock()
        for state in self._states.values():
            if state.updated_at is None:
                return True
            due = state.next_sync_at or state.updated_at
            if now > due + timedelta(seconds=grace):
                return True
        return False

    def stats(self) -> list[dict[str, Any]]:
        return [
            {
                "threat_list": str(tl),
                "entries": len(state.prefixes),
                "prefix_lengths": state.prefixes.lengths,
                "version_token": state.version_token.hex(),
                "updated_at": state.updated_at,
                "next_sync_at": state.next_sync_at,
            }
            for tl, state in self._states.items()
        ]

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def lookup_prefixes(self, full_hash: bytes) -> set[PrefixMatch]:
        """Return, per list, the longest stored prefix of *full_hash*."""
        states = self._states
        matches: set[PrefixMatch] = set()
        for tl, state in states.items():
            prefix = state.prefixes.lookup(full_hash)
            if prefix is not None:
                matches.add(PrefixMatch(tl, prefix))
        return matches

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def apply_diff(
        self,
        threat_list: ThreatList,
        additions: Iterable[bytes],
        removals: Iterable[int],
        new_version_token: bytes,
        checksum: bytes | None = None,
        *,
        reset: bool = False,
    ) -> ListState:
        """Apply a server diff to *threat_list* atomically.

        Removals (indices into the current sorted order) are applied
        before additions.  With ``reset=True`` the list is rebuilt from
        *additions* alone.  When *checksum* is given, the resulting set
        must hash to it.

        Raises:
            ChecksumMismatchError: If the diff is malformed or the checksum
                does not match.  The prefix set is left unchanged and the
                version token is cleared so the next fetch asks for a full
                list.
        """
        additions = list(additions)
        removals = list(removals)
        while True:
            current = self.list_state(threat_list)
            try:
                if reset:
                    updated = HashPrefixSet(additions)
                else:
                    updated = current.prefixes.apply(removals, additions)
            except ValueError as exc:
                self.invalidate(threat_list)
                msg = f"Invalid diff for {threat_list}: {exc}"
                raise ChecksumMismatchError(msg) from exc

            if checksum is not None and updated.checksum() != checksum:
                self.invalidate(threat_list)
                msg = (
                    f"Checksum mismatch for {threat_list}: expected {short_hex(checksum)}, "
                    f"computed {short_hex(updated.checksum())}"
                )
                raise ChecksumMismatchError(msg)

            with self._write_lock:
                # Rebuild if another writer replaced the snapshot meanwhile.
                if self._states[threat_list] is not current:
                    continue
                new_state = replace(
                    current,
                    prefixes=updated,
                    version_token=new_version_token,
                    updated_at=self._clock(),
                )
                self._swap(threat_list, new_state)
            break

        logger.debug(
            "Applied %s to %s: %d -> %d prefixes (token %s)",
            "reset" if reset else "diff",
            threat_list,
            len(current.prefixes),
            len(updated),
            short_hex(new_version_token),
        )
        return new_state

    def mark_updated(self, threat_list: ThreatList, version_token: bytes | None = None) -> None:
        """Record a successful fetch that carried no changes."""
        with self._write_lock:
            current = self.list_state(threat_list)
            token = current.version_token if version_token is None else version_token
            self._swap(
                threat_list,
                replace(current, version_token=token, updated_at=self._clock()),
            )

    def schedule(self, threat_list: ThreatList, next_sync_at: datetime) -> None:
        """Store the earliest time *threat_list* may be fetched again."""
        with self._write_lock:
            current = self.list_state(threat_list)
            self._swap(threat_list, replace(current, next_sync_at=next_sync_at))

    def invalidate(self, threat_list: ThreatList) -> None:
        """Forget the version token so the next fetch requests the full list."""
        with self._write_lock:
            self._invalidate(threat_list, self.list_state(threat_list))
        logger.info("Cleared version token of %s, full resync pending", threat_list)

    def _invalidate(self, threat_list: ThreatList, current: ListState) -> None:
        # Caller holds the write lock.
        self._swap(threat_list, replace(current, version_token=b""))

    def _swap(self, threat_list: ThreatList, state: ListState) -> None:
        # Caller holds the write lock.
        states = dict(self._states)
        states[threat_list] = state
        self._states = MappingProxyType(states)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def persist(self) -> None:
        """Write the current snapshot to disk atomically.

        The temporary file is fsynced before it replaces the database and
        removed again if any step fails.

        Raises:
            StorageError: If the file cannot be written or renamed.
        """
        async with self._persist_lock:
            states = self._states
            blob = await asyncio.to_thread(self._encode, states)
            tmp_path = self._path.with_name(self._path.name + ".tmp")
            try:
                if self._path.parent != Path():
                    await aiofiles.os.makedirs(self._path.parent, exist_ok=True)
                async with aiofiles.open(tmp_path, "wb") as fh:
                    await fh.write(blob)
                    await fh.flush()
                    await asyncio.to_thread(os.fsync, fh.fileno())
                await aiofiles.os.replace(tmp_path, self._path)
            except OSError as exc:
                with contextlib.suppress(OSError):
                    await aiofiles.os.remove(tmp_path)
                msg = f"Failed to write database at {self._path}: {exc}"
                raise StorageError(msg) from exc
        logger.debug("Persisted database to %s (%d bytes)", self._path, len(blob))

    async def _load(self) -> None:
        try:
            async with aiofiles.open(self._path, "rb") as fh:
                blob = await fh.read()
        except FileNotFoundError:
            logger.info("No database at %s, starting with empty threat lists", self._path)
            return
        except OSError as exc:
            msg = f"Failed to read database at {self._path}: {exc}"
            raise StorageError(msg) from exc

        try:
            states = await asyncio.to_thread(self._decode, blob)
        except (OSError, EOFError, ValueError, zlib.error) as exc:
            logger.warning(
                "Discarding corrupt database at %s, a full resync will follow: %s",
                self._path,
                exc,
            )
            return

        with self._write_lock:
            self._states = MappingProxyType(states)
        logger.info(
            "Loaded database from %s (%d prefixes)",
            self._path,
            sum(len(s.prefixes) for s in states.values()),
        )

    def _encode(self, states: Mapping[ThreatList, ListState]) -> bytes:
        stored = DatabaseFile(
            written_at=self._clock(),
            lists=[
                StoredThreatList(
                    threat_type=tl.threat_type,
                    platform_type=tl.platform_type,
                    hash_length=tl.hash_length,
                    version_token=state.version_token,
                    prefixes=state.prefixes.to_groups(),
                    sha256=state.prefixes.checksum(),
                    updated_at=state.updated_at,
                    next_sync_at=state.next_sync_at,
                )
                for tl, state in states.items()
            ],
        )
        return gzip.compress(stored.model_dump_json().encode("utf-8"), mtime=0)

    def _decode(self, blob: bytes) -> dict[ThreatList, ListState]:
        stored = DatabaseFile.model_validate_json(gzip.decompress(blob))
        if stored.format_version != FORMAT_VERSION:
            msg = f"Unsupported database format version {stored.format_version}"
            raise ValueError(msg)

        states = {tl: ListState() for tl in self._lists}
        for record in stored.lists:
            tl = ThreatList(
                threat_type=record.threat_type,
                platform_type=record.platform_type,
                hash_length=record.hash_length,
            )
            if tl not in states:
                logger.debug("Ignoring unsubscribed list %s in database file", tl)
                continue
            prefixes = HashPrefixSet.from_groups(record.prefixes)
            if prefixes.checksum() != record.sha256:
                msg = f"Stored checksum mismatch for {tl}"
                raise ValueError(msg)
            states[tl] = ListState(
                prefixes=prefixes,
                version_token=record.version_token,
                updated_at=record.updated_at,
                next_sync_at=record.next_sync_at,
            )
        return states
