# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Shared test fixtures and configuration."""

from __future__ import annotations

import base64
import hashlib
import random
from collections.abc import Sequence
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import pytest

from gwebrisk.core.constants import ThreatType
from gwebrisk.models.threat import ThreatList

API_BASE = "https://webrisk.googleapis.com/v1"
DIFF_URL = f"{API_BASE}/threatLists:computeDiff"
SEARCH_URL = f"{API_BASE}/hashes:search"

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)

MALWARE = ThreatList(threat_type=ThreatType.MALWARE)
SOCIAL = ThreatList(threat_type=ThreatType.SOCIAL_ENGINEERING)


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def sha256(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


def full_hash(expression: str) -> bytes:
    return sha256(expression.encode("utf-8"))


def checksum_of(prefixes: list[bytes]) -> bytes:
    return sha256(b"".join(sorted(set(prefixes))))


def timestamp(dt: datetime) -> str:
    return dt.strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def diff_payload(
    additions: Sequence[bytes] = (),
    removals: Sequence[int] = (),
    *,
    response_type: str = "DIFF",
    token: bytes = b"v2",
    checksum: bytes | None = None,
    next_diff: datetime | None = None,
) -> dict[str, Any]:
    """Build a computeDiff JSON body with raw (uncompressed) entries."""
    body: dict[str, Any] = {"responseType": response_type, "newVersionToken": b64(token)}
    if additions:
        by_size: dict[int, list[bytes]] = {}
        for prefix in additions:
            by_size.setdefault(len(prefix), []).append(prefix)
        body["additions"] = {
            "rawHashes": [
                {"prefixSize": size, "rawHashes": b64(b"".join(group))}
                for size, group in sorted(by_size.items())
            ]
        }
    if removals:
        body["removals"] = {"rawIndices": {"indices": list(removals)}}
    if checksum is not None:
        body["checksum"] = {"sha256": b64(checksum)}
    if next_diff is not None:
        body["recommendedNextDiff"] = timestamp(next_diff)
    return body


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "webrisk" / "gwebrisk.db"


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep real GWEBRISK_* variables and .env files out of tests."""
    import os

    for name in list(os.environ):
        if name.startswith("GWEBRISK_"):
            monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)
