# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Pydantic models for Web Risk Update API responses."""

from __future__ import annotations

from pydantic import BaseModel, Field

from gwebrisk.core.constants import ResponseType, ThreatType
from gwebrisk.database.prefixes import split_prefixes
from gwebrisk.database.rice import decode_rice_hashes, decode_rice_integers
from gwebrisk.models.threat import ApiTimestamp, B64Bytes


class RawHashes(BaseModel):
    """Uncompressed prefixes of a single size, concatenated."""

    prefix_size: int = Field(alias="prefixSize")
    raw_hashes: B64Bytes = Field(default=b"", alias="rawHashes")

    model_config = {"populate_by_name": True}


class RawIndices(BaseModel):
    indices: list[int] = Field(default_factory=list)


class RiceDeltaEncoding(BaseModel):
    """Golomb-Rice encoded sequence of sorted integers."""

    first_value: int = Field(default=0, alias="firstValue")
    rice_parameter: int = Field(default=0, alias="riceParameter")
    entry_count: int = Field(default=0, alias="entryCount")
    encoded_data: B64Bytes = Field(default=b"", alias="encodedData")

    model_config = {"populate_by_name": True}


class ThreatEntryAdditions(BaseModel):
    raw_hashes: list[RawHashes] = Field(default_factory=list, alias="rawHashes")
    rice_hashes: RiceDeltaEncoding | None = Field(default=None, alias="riceHashes")

    model_config = {"populate_by_name": True}

    def prefixes(self) -> list[bytes]:
        """Decode every added prefix.

        Raises:
            ValueError: If a raw block or Rice encoding is malformed.
        """
        out: list[bytes] = []
        for block in self.raw_hashes:
            out.extend(split_prefixes(block.raw_hashes, block.prefix_size))
        if self.rice_hashes is not None:
            rice = self.rice_hashes
            out.extend(
                decode_rice_hashes(
                    rice.first_value, rice.rice_parameter, rice.entry_count, rice.encoded_data
                )
            )
        return out


class ThreatEntryRemovals(BaseModel):
    raw_indices: RawIndices | None = Field(default=None, alias="rawIndices")
    rice_indices: RiceDeltaEncoding | None = Field(default=None, alias="riceIndices")

    model_config = {"populate_by_name": True}

    def indices(self) -> list[int]:
        out: list[int] = []
        if self.raw_indices is not None:
            out.extend(self.raw_indices.indices)
        if self.rice_indices is not None:
            rice = self.rice_indices
            out.extend(
                decode_rice_integers(
                    rice.first_value, rice.rice_parameter, rice.entry_count, rice.encoded_data
                )
            )
        return out


class Checksum(BaseModel):
    sha256: B64Bytes = b""


class ComputeThreatListDiffResponse(BaseModel):
    """Response of ``threatLists:computeDiff``."""

    response_type: ResponseType = Field(
        default=ResponseType.RESPONSE_TYPE_UNSPECIFIED, alias="responseType"
    )
    additions: ThreatEntryAdditions | None = None
    removals: ThreatEntryRemovals | None = None
    new_version_token: B64Bytes = Field(default=b"", alias="newVersionToken")
    checksum: Checksum | None = None
    recommended_next_diff: ApiTimestamp | None = Field(default=None, alias="recommendedNextDiff")

    model_config = {"populate_by_name": True}

    @property
    def is_reset(self) -> bool:
        return self.response_type == ResponseType.RESET

    def added_prefixes(self) -> list[bytes]:
        return self.additions.prefixes() if self.additions else []

    def removed_indices(self) -> list[int]:
        return self.removals.indices() if self.removals else []

    def expected_checksum(self) -> bytes | None:
        if self.checksum is None or not self.checksum.sha256:
            return None
        return self.checksum.sha256


class ThreatHash(BaseModel):
    """A full hash confirmed by ``hashes:search``."""

    threat_types: list[ThreatType] = Field(default_factory=list, alias="threatTypes")
    hash: B64Bytes
    expire_time: ApiTimestamp = Field(alias="expireTime")

    model_config = {"populate_by_name": True}


class SearchHashesResponse(BaseModel):
    """Response of ``hashes:search``."""

    threats: list[ThreatHash] = Field(default_factory=list)
    negative_expire_time: ApiTimestamp | None = Field(default=None, alias="negativeExpireTime")

    model_config = {"populate_by_name": True}
