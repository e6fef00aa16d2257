# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Enumerations and protocol constants for the Web Risk Update API."""

from enum import StrEnum


class ThreatType(StrEnum):
    MALWARE = "MALWARE"
    SOCIAL_ENGINEERING = "SOCIAL_ENGINEERING"
    UNWANTED_SOFTWARE = "UNWANTED_SOFTWARE"
    SOCIAL_ENGINEERING_EXTENDED_COVERAGE = "SOCIAL_ENGINEERING_EXTENDED_COVERAGE"


class PlatformType(StrEnum):
    ANY_PLATFORM = "ANY_PLATFORM"


class ResponseType(StrEnum):
    RESPONSE_TYPE_UNSPECIFIED = "RESPONSE_TYPE_UNSPECIFIED"
    DIFF = "DIFF"
    RESET = "RESET"


class CompressionType(StrEnum):
    RAW = "RAW"
    RICE = "RICE"


DEFAULT_THREAT_TYPES: list[ThreatType] = [
    ThreatType.MALWARE,
    ThreatType.SOCIAL_ENGINEERING,
    ThreatType.UNWANTED_SOFTWARE,
]

DEFAULT_SERVER_URL = "webrisk.googleapis.com"
API_VERSION = "v1"

# Hash prefix bounds (bytes)
MIN_HASH_PREFIX_LENGTH = 4
MAX_HASH_PREFIX_LENGTH = 32
FULL_HASH_LENGTH = 32

# Expression expansion limits
DEFAULT_MAX_HOST_SUFFIXES = 5
DEFAULT_MAX_PATH_PREFIXES = 6

# Synchronization timing (seconds)
DEFAULT_UPDATE_PERIOD = 30 * 60
DEFAULT_SYNC_JITTER = 30
DEFAULT_BACKOFF_BASE = 15 * 60
DEFAULT_BACKOFF_CAP = 24 * 60 * 60
DEFAULT_STALENESS_GRACE = 60 * 60

# Full-hash cache
DEFAULT_CACHE_MAX_ENTRIES = 10_000
DEFAULT_NEGATIVE_CACHE_TTL = 5 * 60
DEFAULT_MAX_CACHE_TTL = 24 * 60 * 60
