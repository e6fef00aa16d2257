# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Full-hash result caching so repeated lookups avoid remote searches."""

from gwebrisk.cache.memory import CacheLookup, CacheResult, FullHashCache

__all__ = ["CacheLookup", "CacheResult", "FullHashCache"]
