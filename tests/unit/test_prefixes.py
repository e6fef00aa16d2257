# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Tests for the immutable hash-prefix set."""

from __future__ import annotations

import hashlib

import pytest

from gwebrisk.database.prefixes import HashPrefixSet, split_prefixes

FULL = hashlib.sha256(b"bad.test/x").digest()


class TestConstruction:
    def test_sorted_and_deduplicated(self) -> None:
        s = HashPrefixSet([b"dddd", b"aaaa", b"cccc", b"aaaa"])
        assert list(s) == [b"aaaa", b"cccc", b"dddd"]
        assert len(s) == 3

    def test_mixed_lengths_sorted_lexicographically(self) -> None:
        s = HashPrefixSet([b"bbbb", b"abcde", b"abcd"])
        assert list(s) == [b"abcd", b"abcde", b"bbbb"]
        assert s.lengths == [5, 4]

    @pytest.mark.parametrize("prefix", [b"abc", b"x" * 33])
    def test_invalid_length(self, prefix: bytes) -> None:
        with pytest.raises(ValueError, match="out of range"):
            HashPrefixSet([prefix])

    def test_equality(self) -> None:
        assert HashPrefixSet([b"aaaa", b"bbbb"]) == HashPrefixSet([b"bbbb", b"aaaa"])
        assert hash(HashPrefixSet([b"aaaa"])) == hash(HashPrefixSet([b"aaaa"]))

    def test_contains(self) -> None:
        s = HashPrefixSet([b"aaaa", b"bbbbb"])
        assert b"aaaa" in s
        assert b"bbbbb" in s
        assert b"bbbb" not in s
        assert "aaaa" not in s


class TestLookup:
    def test_longest_prefix_wins(self) -> None:
        s = HashPrefixSet([FULL[:4], FULL[:8], b"zzzz"])
        assert s.lookup(FULL) == FULL[:8]

    def test_full_hash_entry(self) -> None:
        assert HashPrefixSet([FULL]).lookup(FULL) == FULL

    def test_miss(self) -> None:
        assert HashPrefixSet([b"\x00\x00\x00\x00"]).lookup(FULL) is None

    def test_empty_set(self) -> None:
        assert HashPrefixSet().lookup(FULL) is None


class TestChecksum:
    def test_checksum_of_sorted_concatenation(self) -> None:
        s = HashPrefixSet([b"bbbb", b"aaaa"])
        assert s.checksum() == hashlib.sha256(b"aaaabbbb").digest()

    def test_empty_checksum(self) -> None:
        assert HashPrefixSet().checksum() == hashlib.sha256(b"").digest()


class TestApply:
    def test_removals_index_current_order_before_additions(self) -> None:
        s = HashPrefixSet([b"aaaa", b"bbbb", b"cccc"])
        updated = s.apply([0, 2], [b"0000"])
        assert list(updated) == [b"0000", b"bbbb"]
        assert list(s) == [b"aaaa", b"bbbb", b"cccc"]

    def test_addition_of_existing_prefix_is_idempotent(self) -> None:
        s = HashPrefixSet([b"aaaa"])
        assert list(s.apply([], [b"aaaa"])) == [b"aaaa"]

    @pytest.mark.parametrize("index", [-1, 3])
    def test_out_of_range_removal(self, index: int) -> None:
        with pytest.raises(ValueError, match="Removal index"):
            HashPrefixSet([b"aaaa", b"bbbb", b"cccc"]).apply([index], [])

    def test_invalid_addition(self) -> None:
        with pytest.raises(ValueError):
            HashPrefixSet().apply([], [b"ab"])


class TestGroups:
    def test_round_trip(self) -> None:
        s = HashPrefixSet([b"aaaa", b"bbbb", b"abcde", FULL])
        groups = s.to_groups()
        assert groups[4] == b"aaaabbbb"
        assert HashPrefixSet.from_groups(groups) == s


class TestSplitPrefixes:
    def test_split(self) -> None:
        assert split_prefixes(b"aaaabbbb", 4) == [b"aaaa", b"bbbb"]

    def test_ragged(self) -> None:
        with pytest.raises(ValueError, match="not a multiple"):
            split_prefixes(b"aaaabbb", 4)

    def test_bad_size(self) -> None:
        with pytest.raises(ValueError, match="Invalid prefix size"):
            split_prefixes(b"aaa", 3)
