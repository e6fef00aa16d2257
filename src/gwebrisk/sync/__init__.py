# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Threat list synchronization: backoff policy, sync passes and the background timer."""

from gwebrisk.sync.backoff import Backoff, next_backoff
from gwebrisk.sync.scheduler import SyncScheduler
from gwebrisk.sync.synchronizer import SyncOutcome, SyncReport, SyncState, Synchronizer

__all__ = [
    "Backoff",
    "SyncOutcome",
    "SyncReport",
    "SyncScheduler",
    "SyncState",
    "Synchronizer",
    "next_backoff",
]
