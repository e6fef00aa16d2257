# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Threat list identity and prefix match models."""

from __future__ import annotations

import base64
import re
from typing import Annotated, NamedTuple

from pydantic import AwareDatetime, BaseModel, BeforeValidator, ConfigDict, PlainSerializer

from gwebrisk.core.constants import FULL_HASH_LENGTH, PlatformType, ThreatType

_NANOS_RE = re.compile(r"(\.\d{6})\d+")


def _decode_b64(value: object) -> object:
    if isinstance(value, str):
        text = value.replace("-", "+").replace("_", "/")
        text += "=" * (-len(text) % 4)
        return base64.b64decode(text)
    return value


def _encode_b64(value: bytes) -> str:
    return base64.b64encode(value).decode("ascii")


def _trim_nanos(value: object) -> object:
    # RFC 3339 timestamps from Google APIs may carry nanosecond precision.
    if isinstance(value, str):
        return _NANOS_RE.sub(r"\1", value)
    return value


B64Bytes = Annotated[
    bytes, BeforeValidator(_decode_b64), PlainSerializer(_encode_b64, return_type=str)
]
# Timestamps must carry an offset; naive values fail validation.
ApiTimestamp = Annotated[AwareDatetime, BeforeValidator(_trim_nanos)]


class ThreatList(BaseModel):
    """Identity of one subscribed threat list."""

    model_config = ConfigDict(frozen=True)

    threat_type: ThreatType
    platform_type: PlatformType = PlatformType.ANY_PLATFORM
    hash_length: int = FULL_HASH_LENGTH

    def __str__(self) -> str:
        return f"{self.threat_type}/{self.platform_type}"


class PrefixMatch(NamedTuple):
    """A stored hash prefix that matched a full hash."""

    threat_list: ThreatList
    prefix: bytes

    @property
    def length(self) -> int:
        return len(self.prefix)
