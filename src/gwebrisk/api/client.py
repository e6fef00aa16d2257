# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Async HTTP client for the Web Risk Update API (v1 REST)."""

from __future__ import annotations

import base64
import logging
from collections.abc import Iterable
from typing import Any

import httpx
from pydantic import ValidationError

from gwebrisk import __version__
from gwebrisk.core.constants import API_VERSION, DEFAULT_SERVER_URL, CompressionType, ThreatType
from gwebrisk.core.exceptions import ConfigurationError, RateLimitError, TransportError
from gwebrisk.core.logging import redact_sensitive, short_hex
from gwebrisk.models.webrisk import ComputeThreatListDiffResponse, SearchHashesResponse

logger = logging.getLogger("gwebrisk.api.client")

_TIMEOUT = 10.0
_USER_AGENT = f"gwebrisk/{__version__}"


def _check_response(resp: httpx.Response, context: str = "") -> None:
    """Raise a typed error for non-2xx responses."""
    if resp.is_success:
        return
    msg = f"{context}: HTTP {resp.status_code}" if context else f"HTTP {resp.status_code}"
    body = resp.text[:200]
    if body:
        msg = f"{msg} - {body}"
    if resp.status_code == 429:
        raise RateLimitError(msg, status_code=429)
    raise TransportError(msg, status_code=resp.status_code)


def _base_url(server_url: str) -> str:
    server_url = server_url.strip().rstrip("/")
    if "://" not in server_url:
        server_url = f"https://{server_url}"
    return f"{server_url}/{API_VERSION}"


class WebRiskAPI:
    """Async client for the two Update API calls the local database needs.

    Parameters
    ----------
    api_key:
        Google Cloud API key, sent as the ``key`` query parameter.
    server_url:
        Host name or base URL of the Web Risk service.
    timeout:
        Per-request timeout in seconds; a timeout is a :class:`TransportError`.
    transport:
        Optional httpx transport (useful for testing).
    """

    def __init__(
        self,
        api_key: str,
        server_url: str = DEFAULT_SERVER_URL,
        timeout: float = _TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not api_key:
            msg = "An API key is required to call the Web Risk service"
            raise ConfigurationError(msg)
        self._api_key = api_key
        self.base_url = _base_url(server_url)
        self.timeout = timeout
        self._http = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            headers={"User-Agent": _USER_AGENT},
            transport=transport,
        )

    async def close(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> WebRiskAPI:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def compute_diff(
        self,
        threat_type: ThreatType,
        version_token: bytes = b"",
        *,
        max_diff_entries: int = 0,
        max_database_entries: int = 0,
        compressions: Iterable[CompressionType] = (CompressionType.RAW,),
    ) -> ComputeThreatListDiffResponse:
        """Fetch the changes to *threat_type* since *version_token*.

        An empty token asks for the full list.
        """
        params: list[tuple[str, str | int]] = [("threatType", str(threat_type))]
        if version_token:
            params.append(("versionToken", base64.b64encode(version_token).decode("ascii")))
        if max_diff_entries:
            params.append(("constraints.maxDiffEntries", max_diff_entries))
        if max_database_entries:
            params.append(("constraints.maxDatabaseEntries", max_database_entries))
        for compression in compressions:
            params.append(("constraints.supportedCompressions", str(compression)))

        logger.debug("computeDiff %s (token %s)", threat_type, short_hex(version_token) or "-")
        data = await self._get("threatLists:computeDiff", params, f"compute diff for {threat_type}")
        return self._parse(ComputeThreatListDiffResponse, data, "computeDiff")

    async def search_hashes(
        self,
        hash_prefix: bytes,
        threat_types: Iterable[ThreatType],
    ) -> SearchHashesResponse:
        """Resolve *hash_prefix* to the full hashes the server lists for it."""
        params: list[tuple[str, str | int]] = [
            ("hashPrefix", base64.b64encode(hash_prefix).decode("ascii")),
        ]
        params.extend(("threatTypes", str(t)) for t in threat_types)

        logger.debug("hashes:search %s", short_hex(hash_prefix))
        data = await self._get("hashes:search", params, f"search hash {short_hex(hash_prefix)}")
        return self._parse(SearchHashesResponse, data, "hashes:search")

    async def _get(
        self,
        method: str,
        params: list[tuple[str, str | int]],
        context: str,
    ) -> Any:
        params = [*params, ("key", self._api_key)]
        try:
            resp = await self._http.get(f"{self.base_url}/{method}", params=params)
        except httpx.TimeoutException as exc:
            msg = f"{context}: timed out after {self.timeout}s"
            raise TransportError(msg) from exc
        except httpx.HTTPError as exc:
            msg = f"{context}: {redact_sensitive(str(exc))}"
            raise TransportError(msg) from exc

        _check_response(resp, context)
        try:
            return resp.json()
        except ValueError as exc:
            msg = f"{context}: response is not JSON"
            raise TransportError(msg, status_code=resp.status_code) from exc

    @staticmethod
    def _parse(model: Any, data: Any, method: str) -> Any:
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            msg = f"Malformed {method} response: {exc.error_count()} validation error(s)"
            raise TransportError(msg) from exc
