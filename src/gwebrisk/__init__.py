# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""gwebrisk - Local-database URL lookup client for the Google Web Risk Update API."""

__version__ = "0.1.0"

from gwebrisk.client import LookupResult, URLVerdict, WebRiskClient
from gwebrisk.core.constants import ThreatType
from gwebrisk.sdk import lookup, lookup_sync

__all__ = [
    "LookupResult",
    "ThreatType",
    "URLVerdict",
    "WebRiskClient",
    "__version__",
    "lookup",
    "lookup_sync",
]
