"""
Transport protocol for JSON-RPC calls.

The JSON-RPC clients (ledger and resolver) depend on this protocol, not on
httpx directly, so tests can plug in a transport that returns canned
responses.

Concrete implementations:
    - HttpxTransport (default, uses httpx.AsyncClient)
    - FakeTransport (tests)
"""

from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable

import httpx

LOGGER = logging.getLogger(__name__)


@runtime_checkable
class JsonRpcTransport(Protocol):
    """Async transport for JSON-RPC POST requests."""

    async def post_json(self, url: str, payload: dict[str, Any]) -> dict[str, Any]:
        """Send a JSON-RPC request and return the parsed response.

        Raises:
            Exception: On transport-level failures (connection refused,
                timeout, TLS error, non-2xx status). Clients map these to
                their own error types.
        """
        ...


class HttpxTransport:
    """Default transport using ``httpx.AsyncClient``.

    A client may be shared across calls by passing one in; otherwise a
    short-lived client is opened per request.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._timeout = timeout
        self._client = client

    async def post_json(self, url: str, payload: dict[str, Any]) -> dict[str, Any]:
        LOGGER.debug("POST %s method=%s id=%s", url, payload.get("method"), payload.get("id"))
        if self._client is not None:
            return await self._post(self._client, url, payload)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await self._post(client, url, payload)

    async def _post(
        self, client: httpx.AsyncClient, url: str, payload: dict[str, Any]
    ) -> dict[str, Any]:
        response = await client.post(
            url,
            json=payload,
            headers={"Content-Type": "application/json"},
        )
        response.raise_for_status()
        result = response.json()
        if not isinstance(result, dict):
            raise ValueError(
                f"JSON-RPC response was not an object: {type(result).__name__}"
            )
        return result
