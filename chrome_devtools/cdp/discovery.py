"""
HTTP endpoint discovery.

Chrome started with ``--remote-debugging-port`` serves a small JSON API next
to its WebSocket endpoint:

- GET /json/version -> browser info including ``webSocketDebuggerUrl``
- GET /json/list    -> one entry per inspectable target
"""

from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import urlparse

import httpx

from chrome_devtools.cdp.errors import CDPConnectionError
from chrome_devtools.config.defaults import DEFAULT_HTTP_TIMEOUT

logger = logging.getLogger(__name__)

WS_SCHEMES = ("ws", "wss")
HTTP_SCHEMES = ("http", "https")


async def _get_json(
    endpoint: str,
    path: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = DEFAULT_HTTP_TIMEOUT,
) -> Any:
    url = f"{endpoint.rstrip('/')}{path}"
    try:
        if client is not None:
            response = await client.get(url, timeout=timeout)
        else:
            async with httpx.AsyncClient() as owned:
                response = await owned.get(url, timeout=timeout)
        response.raise_for_status()
        return response.json()
    except httpx.HTTPStatusError as e:
        raise CDPConnectionError(url, f"HTTP {e.response.status_code}") from e
    except httpx.RequestError as e:
        raise CDPConnectionError(url, str(e) or type(e).__name__) from e
    except ValueError as e:
        raise CDPConnectionError(url, f"invalid JSON: {e}") from e


async def get_version(
    endpoint: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = DEFAULT_HTTP_TIMEOUT,
) -> dict[str, Any]:
    """Fetch ``/json/version`` from a debugging endpoint.

    Args:
        endpoint: Base address, e.g. ``http://localhost:9222``.
        client: Optional client to reuse.
        timeout: Request timeout in seconds.

    Raises:
        CDPConnectionError: If the endpoint cannot be reached.
    """
    data = await _get_json(endpoint, "/json/version", client=client, timeout=timeout)
    if not isinstance(data, dict):
        raise CDPConnectionError(endpoint, "unexpected /json/version payload")
    return data


async def list_targets(
    endpoint: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = DEFAULT_HTTP_TIMEOUT,
) -> list[dict[str, Any]]:
    """Fetch ``/json/list`` from a debugging endpoint."""
    data = await _get_json(endpoint, "/json/list", client=client, timeout=timeout)
    if not isinstance(data, list):
        raise CDPConnectionError(endpoint, "unexpected /json/list payload")
    return data


async def resolve_ws_url(
    url: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = DEFAULT_HTTP_TIMEOUT,
) -> str:
    """Turn a debugging address into the browser WebSocket URL.

    ``ws://`` and ``wss://`` URLs are returned unchanged; ``http(s)://``
    addresses are resolved through ``/json/version``.

    Raises:
        CDPConnectionError: If the scheme is unsupported or the endpoint
            does not expose a WebSocket URL.
    """
    scheme = urlparse(url).scheme.lower()
    if scheme in WS_SCHEMES:
        return url
    if scheme not in HTTP_SCHEMES:
        raise CDPConnectionError(url, f"unsupported scheme {scheme!r}")

    version = await get_version(url, client=client, timeout=timeout)
    ws_url = version.get("webSocketDebuggerUrl")
    if not ws_url:
        raise CDPConnectionError(url, "no webSocketDebuggerUrl in /json/version")

    logger.debug(f"Resolved {url} to {ws_url}")
    return ws_url
