# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Unit tests for the public SDK interface."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path

import httpx
import pytest
import respx
from conftest import DIFF_URL, SEARCH_URL, b64, checksum_of, diff_payload, full_hash, timestamp

import gwebrisk
from gwebrisk import LookupResult, ThreatType, lookup, lookup_sync
from gwebrisk.core.config import Settings
from gwebrisk.core.exceptions import ConfigurationError

BAD = full_hash("bad.test/x")


def _mock_service() -> respx.Route:
    respx.get(DIFF_URL).mock(
        return_value=httpx.Response(
            200,
            json=diff_payload(
                [BAD[:4]], response_type="RESET", checksum=checksum_of([BAD[:4]])
            ),
        )
    )
    now = datetime.now(UTC)
    return respx.get(SEARCH_URL).mock(
        return_value=httpx.Response(
            200,
            json={
                "threats": [
                    {
                        "threatTypes": ["SOCIAL_ENGINEERING"],
                        "hash": b64(BAD),
                        "expireTime": timestamp(now + timedelta(minutes=10)),
                    }
                ],
                "negativeExpireTime": timestamp(now + timedelta(minutes=5)),
            },
        )
    )


# ---------------------------------------------------------------------------
# Tests: lookup_sync
# ---------------------------------------------------------------------------


class TestLookupSync:
    @respx.mock
    def test_returns_lookup_result(self, db_path: Path) -> None:
        _mock_service()

        result = lookup_sync(
            ["http://good.test/", "http://bad.test/x"], api_key="test-key", db_path=db_path
        )

        assert isinstance(result, LookupResult)
        assert result.error is None
        assert result.threats == [frozenset(), frozenset({ThreatType.SOCIAL_ENGINEERING})]
        assert db_path.exists()

    @respx.mock
    def test_reuses_persisted_database(self, db_path: Path) -> None:
        _mock_service()
        lookup_sync(["http://good.test/"], api_key="test-key", db_path=db_path)
        diff_calls = respx.calls.call_count

        lookup_sync(["http://good.test/"], api_key="test-key", db_path=db_path)

        assert respx.calls.call_count == diff_calls

    def test_missing_api_key(self, db_path: Path) -> None:
        with pytest.raises(ConfigurationError):
            lookup_sync(["http://good.test/"], db_path=db_path)


# ---------------------------------------------------------------------------
# Tests: lookup (async)
# ---------------------------------------------------------------------------


class TestLookupAsync:
    @respx.mock
    async def test_settings_override(self, db_path: Path) -> None:
        _mock_service()
        settings = Settings(
            api_key="settings-key", db_path=db_path, threat_types=[ThreatType.MALWARE]
        )

        result = await lookup(["http://bad.test/x"], settings=settings)

        # SOCIAL_ENGINEERING is not subscribed, so the hit is not reported
        assert result.verdicts[0].is_safe
        assert respx.calls.last.request.url.params["key"] == "settings-key"

    @respx.mock
    async def test_env_api_key(self, db_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        route = _mock_service()
        monkeypatch.setenv("GWEBRISK_API_KEY", "env-key")
        monkeypatch.setenv("GWEBRISK_DB_PATH", str(db_path))

        result = await lookup(["http://bad.test/x"])

        assert result.unsafe[0].url == "http://bad.test/x"
        assert route.calls.last.request.url.params["key"] == "env-key"


class TestPublicExports:
    def test_all(self) -> None:
        for name in ("WebRiskClient", "LookupResult", "URLVerdict", "lookup", "lookup_sync"):
            assert name in gwebrisk.__all__
            assert hasattr(gwebrisk, name)
