# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Tests for wire and identity models."""

from __future__ import annotations

import base64
from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from gwebrisk.core.constants import PlatformType, ThreatType
from gwebrisk.models.threat import PrefixMatch, ThreatList
from gwebrisk.models.webrisk import (
    ComputeThreatListDiffResponse,
    SearchHashesResponse,
    ThreatEntryAdditions,
)


class TestThreatList:
    def test_hashable_identity(self) -> None:
        a = ThreatList(threat_type=ThreatType.MALWARE)
        b = ThreatList(threat_type="MALWARE")
        assert a == b
        assert {a: 1}[b] == 1
        assert a.platform_type == PlatformType.ANY_PLATFORM
        assert a.hash_length == 32

    def test_frozen(self) -> None:
        tl = ThreatList(threat_type=ThreatType.MALWARE)
        with pytest.raises(ValidationError):
            tl.threat_type = ThreatType.SOCIAL_ENGINEERING

    def test_str(self) -> None:
        assert str(ThreatList(threat_type=ThreatType.MALWARE)) == "MALWARE/ANY_PLATFORM"

    def test_prefix_match_length(self) -> None:
        match = PrefixMatch(ThreatList(threat_type=ThreatType.MALWARE), b"abcdef")
        assert match.length == 6


class TestDiffResponse:
    def test_defaults(self) -> None:
        response = ComputeThreatListDiffResponse.model_validate({})
        assert not response.is_reset
        assert response.added_prefixes() == []
        assert response.removed_indices() == []
        assert response.expected_checksum() is None

    def test_url_safe_base64_accepted(self) -> None:
        token = b"\xfb\xff\xfe"
        encoded = base64.urlsafe_b64encode(token).decode().rstrip("=")
        response = ComputeThreatListDiffResponse.model_validate({"newVersionToken": encoded})
        assert response.new_version_token == token

    def test_ragged_raw_hashes(self) -> None:
        additions = ThreatEntryAdditions.model_validate(
            {"rawHashes": [{"prefixSize": 4, "rawHashes": base64.b64encode(b"abcdef").decode()}]}
        )
        with pytest.raises(ValueError):
            additions.prefixes()

    def test_serializes_bytes_as_base64(self) -> None:
        response = ComputeThreatListDiffResponse(new_version_token=b"v1")
        assert response.model_dump(mode="json", by_alias=True)["newVersionToken"] == "djE="


class TestTimestamps:
    def test_offset_is_preserved(self) -> None:
        response = SearchHashesResponse.model_validate(
            {"negativeExpireTime": "2026-01-01T12:00:00.123456789+02:00"}
        )
        expected = datetime(2026, 1, 1, 10, 0, 0, 123456, tzinfo=UTC)
        assert response.negative_expire_time == expected

    @pytest.mark.parametrize(
        "payload",
        [
            {"recommendedNextDiff": "2026-01-01T12:00:00"},
            {"recommendedNextDiff": "2026-01-01T12:00:00.5"},
        ],
    )
    def test_naive_diff_time_rejected(self, payload: dict[str, str]) -> None:
        with pytest.raises(ValidationError):
            ComputeThreatListDiffResponse.model_validate(payload)

    def test_naive_expire_time_rejected(self) -> None:
        with pytest.raises(ValidationError):
            SearchHashesResponse.model_validate(
                {"threats": [], "negativeExpireTime": "2026-01-01T12:00:00"}
            )
