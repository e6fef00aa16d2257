# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Immutable sorted hash-prefix sets with longest-prefix lookup."""

from __future__ import annotations

import hashlib
import itertools
from bisect import bisect_left
from collections.abc import Iterable, Iterator

from gwebrisk.core.constants import MAX_HASH_PREFIX_LENGTH, MIN_HASH_PREFIX_LENGTH


def split_prefixes(raw: bytes, prefix_size: int) -> list[bytes]:
    """Split a concatenation of fixed-size prefixes.

    Raises:
        ValueError: If *prefix_size* is out of range or *raw* is not a
            whole number of prefixes.
    """
    if not MIN_HASH_PREFIX_LENGTH <= prefix_size <= MAX_HASH_PREFIX_LENGTH:
        msg = f"Invalid prefix size {prefix_size}"
        raise ValueError(msg)
    if len(raw) % prefix_size:
        msg = f"{len(raw)} bytes is not a multiple of prefix size {prefix_size}"
        raise ValueError(msg)
    return [raw[i : i + prefix_size] for i in range(0, len(raw), prefix_size)]


class HashPrefixSet:
    """A sorted, duplicate-free collection of hash prefixes of mixed lengths.

    Instances never change after construction; diff application returns a
    new set.  The lexicographic order of the whole set is the order the
    server's removal indices refer to, and the SHA-256 of the
    concatenated sorted prefixes is the list checksum.
    """

    __slots__ = ("_by_length", "_checksum", "_lengths", "_prefixes")

    def __init__(self, prefixes: Iterable[bytes] = ()) -> None:
        items = sorted(set(prefixes))
        by_length: dict[int, list[bytes]] = {}
        for prefix in items:
            if not MIN_HASH_PREFIX_LENGTH <= len(prefix) <= MAX_HASH_PREFIX_LENGTH:
                msg = f"Hash prefix of length {len(prefix)} is out of range"
                raise ValueError(msg)
            by_length.setdefault(len(prefix), []).append(prefix)

        self._prefixes: tuple[bytes, ...] = tuple(items)
        self._by_length = by_length
        self._lengths = sorted(by_length, reverse=True)
        self._checksum: bytes | None = None

    def __len__(self) -> int:
        return len(self._prefixes)

    def __iter__(self) -> Iterator[bytes]:
        return iter(self._prefixes)

    def __getitem__(self, index: int) -> bytes:
        return self._prefixes[index]

    def __contains__(self, prefix: object) -> bool:
        if not isinstance(prefix, bytes):
            return False
        bucket = self._by_length.get(len(prefix))
        if not bucket:
            return False
        i = bisect_left(bucket, prefix)
        return i < len(bucket) and bucket[i] == prefix

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HashPrefixSet):
            return NotImplemented
        return self._prefixes == other._prefixes

    def __hash__(self) -> int:
        return hash(self._prefixes)

    def __repr__(self) -> str:
        return f"HashPrefixSet(size={len(self)}, lengths={self._lengths})"

    @property
    def lengths(self) -> list[int]:
        """Distinct prefix lengths present, longest first."""
        return list(self._lengths)

    def lookup(self, full_hash: bytes) -> bytes | None:
        """Return the longest stored prefix of *full_hash*, or ``None``."""
        for length in self._lengths:
            candidate = full_hash[:length]
            if len(candidate) < length:
                continue
            bucket = self._by_length[length]
            i = bisect_left(bucket, candidate)
            if i < len(bucket) and bucket[i] == candidate:
                return candidate
        return None

    def checksum(self) -> bytes:
        """SHA-256 over the concatenation of all prefixes in sorted order."""
        if self._checksum is None:
            digest = hashlib.sha256()
            for prefix in self._prefixes:
                digest.update(prefix)
            self._checksum = digest.digest()
        return self._checksum

    def apply(self, removals: Iterable[int], additions: Iterable[bytes]) -> HashPrefixSet:
        """Return a new set with *removals* (indices) dropped, then *additions* merged.

        Raises:
            ValueError: If a removal index is outside the current set or an
                addition has an invalid length.
        """
        drop = set(removals)
        if any(i < 0 or i >= len(self._prefixes) for i in drop):
            msg = f"Removal index out of range for a list of {len(self._prefixes)} prefixes"
            raise ValueError(msg)
        kept = (p for i, p in enumerate(self._prefixes) if i not in drop)
        return HashPrefixSet(itertools.chain(kept, additions))

    def to_groups(self) -> dict[int, bytes]:
        """Concatenate prefixes per length, for compact persistence."""
        return {length: b"".join(bucket) for length, bucket in sorted(self._by_length.items())}

    @classmethod
    def from_groups(cls, groups: dict[int, bytes]) -> HashPrefixSet:
        prefixes: list[bytes] = []
        for length, raw in groups.items():
            prefixes.extend(split_prefixes(raw, int(length)))
        return cls(prefixes)
