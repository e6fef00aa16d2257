# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""URL canonicalization and lookup-hash generation."""

from gwebrisk.urls.canonical import CanonicalURL, canonicalize
from gwebrisk.urls.hashes import HashCandidate, generate_expressions, generate_hashes

__all__ = [
    "CanonicalURL",
    "HashCandidate",
    "canonicalize",
    "generate_expressions",
    "generate_hashes",
]
