# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Local threat database: prefix sets, diff decoding and persistence."""

from gwebrisk.database.prefixes import HashPrefixSet
from gwebrisk.database.store import ListState, ThreatDatabase

__all__ = ["HashPrefixSet", "ListState", "ThreatDatabase"]
