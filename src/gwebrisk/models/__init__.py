# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Domain, wire and storage models for gwebrisk."""

from gwebrisk.models.threat import PrefixMatch, ThreatList

__all__ = [
    "PrefixMatch",
    "ThreatList",
]
