# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Exit codes of ``gwebrisk lookup``.

The process exits with the bitwise OR of:
    0 - SAFE: every URL was looked up and is safe
    1 - UNSAFE: at least one URL is not safe
    2 - FAILED: at least one URL lookup failed
    4 - INVALID: the input was invalid
"""

from __future__ import annotations

from enum import IntFlag

from gwebrisk.client import LookupResult


class LookupExitCode(IntFlag):
    """Exit code bits combined by the ``lookup`` command."""

    SAFE = 0
    UNSAFE = 1
    FAILED = 2
    INVALID = 4


def result_to_exit_code(result: LookupResult) -> LookupExitCode:
    """Fold a lookup result into its exit code.

    An aggregate error or any per-URL error sets ``FAILED``; any URL with
    a threat sets ``UNSAFE``.  Both bits may be set at once.
    """
    code = LookupExitCode.SAFE
    if result.error is not None or any(v.error is not None for v in result.verdicts):
        code |= LookupExitCode.FAILED
    if any(v.is_unsafe for v in result.verdicts):
        code |= LookupExitCode.UNSAFE
    return code
