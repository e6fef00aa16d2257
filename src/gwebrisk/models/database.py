# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""On-disk layout of the local threat database."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from gwebrisk.core.constants import FULL_HASH_LENGTH, PlatformType, ThreatType
from gwebrisk.models.threat import B64Bytes

FORMAT_VERSION = 1


class StoredThreatList(BaseModel):
    """One persisted threat list: identity, state token and prefixes."""

    threat_type: ThreatType
    platform_type: PlatformType = PlatformType.ANY_PLATFORM
    hash_length: int = FULL_HASH_LENGTH
    version_token: B64Bytes = b""
    # prefix length -> concatenated sorted prefixes of that length
    prefixes: dict[int, B64Bytes] = Field(default_factory=dict)
    sha256: B64Bytes = b""
    updated_at: datetime | None = None
    next_sync_at: datetime | None = None


class DatabaseFile(BaseModel):
    format_version: int = FORMAT_VERSION
    written_at: datetime
    lists: list[StoredThreatList] = Field(default_factory=list)
