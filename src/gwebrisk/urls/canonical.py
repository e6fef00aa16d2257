# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""URL canonicalization following the Web Risk hashing rules.

Canonicalization works on the UTF-8 bytes of the input so that
percent-decoded octets which are not valid UTF-8 survive unchanged and
are re-escaped byte for byte.  The result is the single form every URL
expression is derived from before hashing.
"""

from __future__ import annotations

import ipaddress
import re
from dataclasses import dataclass
from urllib.parse import unquote_to_bytes

import idna

from gwebrisk.core.exceptions import InvalidURLError

_MAX_UNESCAPE_ROUNDS = 1024

_SCHEME_RE = re.compile(rb"^([a-zA-Z][a-zA-Z0-9+\-.]*)://")
_PORT_RE = re.compile(rb"^[0-9]*$")
_DOTS_RE = re.compile(rb"\.{2,}")
_IPV4_PART_RE = re.compile(rb"^(0x[0-9a-f]*|[0-9]+)$")

# Octets kept literally when re-escaping: printable ASCII except '#' and '%'
_UNESCAPED = frozenset(b for b in range(0x21, 0x7F) if b not in (0x23, 0x25))


@dataclass(frozen=True, slots=True)
class CanonicalURL:
    """A canonicalized URL split into the parts used for hashing."""

    scheme: str
    host: str
    path: str
    query: str | None = None  # None when the URL has no '?'
    is_ip: bool = False

    @property
    def url(self) -> str:
        query = "" if self.query is None else f"?{self.query}"
        return f"{self.scheme}://{self.host}{self.path}{query}"

    def __str__(self) -> str:
        return self.url


def canonicalize(raw: str) -> CanonicalURL:
    """Canonicalize *raw* into the form the Web Risk protocol hashes against.

    Raises:
        InvalidURLError: If the input has no usable host, carries a
            malformed port or IPv6 literal, or its host cannot be IDNA
            encoded.
    """
    if not isinstance(raw, str):
        msg = f"URL must be a string, got {type(raw).__name__}"
        raise InvalidURLError(msg)

    data = raw.strip().encode("utf-8")
    data = data.translate(None, b"\t\r\n")
    data = data.split(b"#", 1)[0]
    data = _unescape(data)
    if not data:
        msg = f"Empty URL: {raw!r}"
        raise InvalidURLError(msg)

    match = _SCHEME_RE.match(data)
    if match:
        scheme = match.group(1).lower().decode("ascii")
        rest = data[match.end():]
    else:
        scheme = "http"
        rest = data

    end = len(rest)
    for sep in (b"/", b"?"):
        idx = rest.find(sep)
        if idx != -1:
            end = min(end, idx)
    authority, remainder = rest[:end], rest[end:]

    if b"?" in remainder:
        raw_path, raw_query = remainder.split(b"?", 1)
    else:
        raw_path, raw_query = remainder, None

    host, is_ip = _canonical_host(_strip_port(authority, raw), raw)
    path = _escape(_canonical_path(raw_path))
    query = _escape(raw_query) if raw_query is not None else None
    return CanonicalURL(scheme=scheme, host=host, path=path, query=query, is_ip=is_ip)


def _unescape(data: bytes) -> bytes:
    """Percent-decode repeatedly until the value stops changing."""
    for _ in range(_MAX_UNESCAPE_ROUNDS):
        decoded = unquote_to_bytes(data)
        if decoded == data:
            return data
        data = decoded
    msg = "URL is percent-encoded too many times"
    raise InvalidURLError(msg)


def _escape(data: bytes) -> str:
    return "".join(chr(b) if b in _UNESCAPED else f"%{b:02X}" for b in data)


def _strip_port(authority: bytes, raw: str) -> bytes:
    """Drop userinfo and port from an authority component."""
    hostport = authority.rpartition(b"@")[2]

    if hostport.startswith(b"["):
        close = hostport.find(b"]")
        if close == -1:
            msg = f"Unterminated IPv6 literal in {raw!r}"
            raise InvalidURLError(msg)
        host, after = hostport[: close + 1], hostport[close + 1:]
        if after and not after.startswith(b":"):
            msg = f"Unexpected characters after IPv6 literal in {raw!r}"
            raise InvalidURLError(msg)
        port = after[1:]
    elif b":" in hostport:
        host, _, port = hostport.rpartition(b":")
    else:
        host, port = hostport, b""

    if not _PORT_RE.match(port):
        msg = f"Invalid port in {raw!r}"
        raise InvalidURLError(msg)
    return host


def _canonical_host(host: bytes, raw: str) -> tuple[str, bool]:
    if host.startswith(b"["):
        try:
            addr = ipaddress.IPv6Address(host[1:-1].decode("ascii"))
        except (UnicodeDecodeError, ValueError) as exc:
            msg = f"Invalid IPv6 literal in {raw!r}"
            raise InvalidURLError(msg) from exc
        return f"[{addr.compressed}]", True

    host = _DOTS_RE.sub(b".", host.lower()).strip(b".")
    if not host:
        msg = f"URL has no host: {raw!r}"
        raise InvalidURLError(msg)

    ip = _parse_ipv4(host)
    if ip is not None:
        return ip, True

    if not host.isascii():
        try:
            text = host.decode("utf-8")
        except UnicodeDecodeError:
            text = None
        if text is not None:
            try:
                # Non-transitional UTS-46 keeps sharp s and final sigma distinct.
                host = idna.encode(text, uts46=True, transitional=False).lower()
            except (idna.IDNAError, UnicodeError) as exc:
                msg = f"Host cannot be IDNA encoded: {raw!r}"
                raise InvalidURLError(msg) from exc

    return _escape(host), False


def _parse_ipv4(host: bytes) -> str | None:
    """Interpret *host* the way ``inet_aton`` does, or return ``None``.

    Accepts one to four dot-separated parts in decimal, octal (leading
    ``0``) or hex (``0x``); the last part fills all remaining octets.
    """
    parts = host.split(b".")
    if not 1 <= len(parts) <= 4:
        return None

    values: list[int] = []
    for part in parts:
        if not _IPV4_PART_RE.match(part):
            return None
        if part.startswith(b"0x"):
            value = int(part[2:] or b"0", 16)
        elif len(part) > 1 and part.startswith(b"0"):
            try:
                value = int(part, 8)
            except ValueError:
                return None
        else:
            value = int(part)
        values.append(value)

    *head, last = values
    if any(v > 0xFF for v in head):
        return None
    remaining = 4 - len(head)
    if last >= 1 << (8 * remaining):
        return None

    number = 0
    for v in head:
        number = (number << 8) | v
    number = (number << (8 * remaining)) | last
    return str(ipaddress.IPv4Address(number))


def _canonical_path(path: bytes) -> bytes:
    """Resolve ``.``/``..`` segments and collapse runs of slashes."""
    if not path:
        return b"/"

    segments = path.split(b"/")
    trailing = path.endswith(b"/") or segments[-1] in (b".", b"..")

    kept: list[bytes] = []
    for seg in segments:
        if seg in (b"", b"."):
            continue
        if seg == b"..":
            if kept:
                kept.pop()
            continue
        kept.append(seg)

    result = b"/" + b"/".join(kept)
    if trailing and kept:
        result += b"/"
    return result
