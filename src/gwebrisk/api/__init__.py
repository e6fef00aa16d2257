# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Client for the remote Web Risk service."""

from gwebrisk.api.client import WebRiskAPI

__all__ = ["WebRiskAPI"]
