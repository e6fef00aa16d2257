# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Exponential backoff for failed threat list fetches."""

from __future__ import annotations

from typing import NamedTuple

from gwebrisk.core.constants import DEFAULT_BACKOFF_BASE, DEFAULT_BACKOFF_CAP


class Backoff(NamedTuple):
    """A retry wait and the upper bound of the random jitter added to it."""

    wait: float
    jitter_bound: float

    def delay(self, fraction: float, cap: float = DEFAULT_BACKOFF_CAP) -> float:
        """Concrete delay for a random *fraction* in ``[0, 1)``, capped at *cap*."""
        return min(cap, self.wait + fraction * self.jitter_bound)


def next_backoff(
    attempt: int,
    previous_wait: float | None = None,
    *,
    base: float = DEFAULT_BACKOFF_BASE,
    cap: float = DEFAULT_BACKOFF_CAP,
) -> Backoff:
    """Compute the wait before retry number *attempt* (1 = first failure).

    The wait doubles per consecutive failure starting at *base*, never
    shrinks below the previous wait while failures continue, and is capped
    at *cap*.  The jitter bound equals the wait, so the concrete delay lies
    in ``[wait, 2 * wait]`` before capping.
    """
    attempt = max(attempt, 1)
    # Clamp the exponent so huge attempt counts cannot overflow.
    wait = min(cap, base * 2 ** min(attempt - 1, 32))
    if previous_wait:
        wait = min(cap, max(wait, previous_wait))
    return Backoff(wait=wait, jitter_bound=wait)
