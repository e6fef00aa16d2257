# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Injectable wall clock so schedules and expiries can be tested without sleeping."""

from collections.abc import Callable
from datetime import UTC, datetime

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(UTC)
