"""Thin async HTTP helpers shared by the upstream adapters."""

from __future__ import annotations

from typing import Any, Mapping

import httpx

from sofr_tracker.config import DEFAULT_HTTP_TIMEOUT, USER_AGENT
from sofr_tracker.errors import UpstreamUnavailable
from sofr_tracker.utils.logger import get_logger

LOGGER = get_logger(__name__)


def build_client(
    *,
    timeout: float = DEFAULT_HTTP_TIMEOUT,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create the shared client used for one synchronisation pass."""

    return httpx.AsyncClient(
        timeout=timeout,
        transport=transport,
        headers={"User-Agent": USER_AGENT},
        follow_redirects=True,
    )


async def get_response(
    client: httpx.AsyncClient,
    source: str,
    url: str,
    params: Mapping[str, str] | None = None,
) -> httpx.Response:
    """Issue a GET and map transport or status failures to :class:`UpstreamUnavailable`."""

    LOGGER.debug("GET %s params=%s", url, dict(params or {}))
    try:
        response = await client.get(url, params=params)
    except httpx.TransportError as exc:
        raise UpstreamUnavailable(source, url) from exc
    try:
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise UpstreamUnavailable(source, str(response.url), status_code=response.status_code) from exc
    return response


async def get_json(
    client: httpx.AsyncClient,
    source: str,
    url: str,
    params: Mapping[str, str] | None = None,
) -> Any:
    response = await get_response(client, source, url, params)
    try:
        return response.json()
    except ValueError as exc:
        # A 2xx with a non-JSON body (maintenance pages) is treated like an outage.
        raise UpstreamUnavailable(source, str(response.url), status_code=response.status_code) from exc


async def get_text(
    client: httpx.AsyncClient,
    source: str,
    url: str,
    params: Mapping[str, str] | None = None,
) -> str:
    response = await get_response(client, source, url, params)
    return response.text


__all__ = ["build_client", "get_json", "get_response", "get_text"]
