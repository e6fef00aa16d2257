# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Host-suffix / path-prefix expression expansion and SHA-256 hashing."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass

from gwebrisk.core.constants import DEFAULT_MAX_HOST_SUFFIXES, DEFAULT_MAX_PATH_PREFIXES
from gwebrisk.urls.canonical import CanonicalURL, canonicalize


@dataclass(frozen=True, slots=True)
class HashCandidate:
    """One lookup expression and its full 32-byte hash."""

    expression: str
    full_hash: bytes


def host_suffixes(url: CanonicalURL, max_suffixes: int = DEFAULT_MAX_HOST_SUFFIXES) -> list[str]:
    """Return the exact host followed by up to ``max_suffixes - 1`` suffixes.

    Suffixes are taken from the last ``max_suffixes`` labels, dropping one
    leading label at a time; the top-level label on its own is never
    produced, and an IP host yields only itself.
    """
    if url.is_ip:
        return [url.host]

    labels = url.host.split(".")
    hosts = [url.host]
    start = max(len(labels) - max_suffixes, 1)
    for i in range(start, len(labels) - 1):
        hosts.append(".".join(labels[i:]))
    return list(dict.fromkeys(hosts))


def path_prefixes(url: CanonicalURL, max_prefixes: int = DEFAULT_MAX_PATH_PREFIXES) -> list[str]:
    """Return path variants ordered from most to least specific.

    ``path?query`` (when the query is non-empty), the exact path, then
    directory prefixes down to ``/``.  Besides the root, at most
    ``max_prefixes - 3`` leading directory components are expanded.
    """
    paths: list[str] = []
    if url.query:
        paths.append(f"{url.path}?{url.query}")
    paths.append(url.path)

    directories = [c for c in url.path.split("/")[:-1] if c]
    depth = min(len(directories), max(max_prefixes - 3, 0))
    prefixes = ["/"]
    for i in range(1, depth + 1):
        prefixes.append("/" + "/".join(directories[:i]) + "/")
    paths.extend(reversed(prefixes))
    return list(dict.fromkeys(paths))


def generate_expressions(
    url: CanonicalURL | str,
    max_host_suffixes: int = DEFAULT_MAX_HOST_SUFFIXES,
    max_path_prefixes: int = DEFAULT_MAX_PATH_PREFIXES,
) -> list[str]:
    """Return every ``host + path`` lookup expression for *url*, deduplicated."""
    if isinstance(url, str):
        url = canonicalize(url)
    hosts = host_suffixes(url, max_host_suffixes)
    paths = path_prefixes(url, max_path_prefixes)
    return list(dict.fromkeys(h + p for h in hosts for p in paths))


def generate_hashes(
    url: CanonicalURL | str,
    max_host_suffixes: int = DEFAULT_MAX_HOST_SUFFIXES,
    max_path_prefixes: int = DEFAULT_MAX_PATH_PREFIXES,
) -> list[HashCandidate]:
    """Hash every lookup expression of *url*, most specific first."""
    return [
        HashCandidate(expression=expr, full_hash=hash_expression(expr))
        for expr in generate_expressions(url, max_host_suffixes, max_path_prefixes)
    ]


def hash_expression(expression: str) -> bytes:
    return hashlib.sha256(expression.encode("utf-8")).digest()
