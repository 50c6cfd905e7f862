"""HTTP remote client.

Implements the remote client capability against a running data service:

- ``fetch_data(type, data)``: ``POST {base}/automation:fetch_data`` with
  ``{"data": {"type": type, "data": data}}``
- ``list_records(collection, params)``: ``GET {base}/{collection}:list``

Error statuses surface as RemoteDataError, the same way the in-process
RemoteDataService reports them.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from ..config import get_http_timeout_ms
from ..engine.exceptions import RemoteDataError

logger = logging.getLogger(__name__)


def _error_message(response: httpx.Response) -> str:
    """Best-effort error text from a service error response."""
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        errors = body.get("errors")
        if isinstance(errors, list) and errors and isinstance(errors[0], dict):
            return str(errors[0].get("message", response.reason_phrase))
        if "message" in body:
            return str(body["message"])
    return response.reason_phrase


class HttpRemoteClient:
    """Remote client speaking to a data service over HTTP.

    Args:
        base_url: Service API root, e.g. ``https://app.example.com/api``
        timeout_ms: Request timeout (defaults to AUTOMATION_HTTP_TIMEOUT_MS)
        headers: Extra headers sent with every request (auth tokens)
        transport: Custom httpx transport
    """

    def __init__(
        self,
        base_url: str,
        timeout_ms: int | None = None,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout_ms = timeout_ms or get_http_timeout_ms()
        self.headers = dict(headers or {})
        self._transport = transport

    async def fetch_data(self, type: str, data: Any) -> dict[str, Any]:
        return await self._request(
            "POST",
            f"{self.base_url}/automation:fetch_data",
            json={"data": {"type": type, "data": data}},
        )

    async def list_records(self, collection: str, params: dict[str, Any]) -> dict[str, Any]:
        query = {
            key: json.dumps(value) if isinstance(value, (dict, list, bool)) else value
            for key, value in (params or {}).items()
        }
        return await self._request("GET", f"{self.base_url}/{collection}:list", params=query)

    async def _request(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_ms / 1000,
                headers=self.headers,
                transport=self._transport,
            ) as client:
                response = await client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.warning(f"Remote client {method} {url} failed: {e}")
            raise RemoteDataError(500, f"Request error: {e}") from e

        if response.status_code >= 400:
            raise RemoteDataError(response.status_code, _error_message(response))

        try:
            body = response.json()
        except ValueError as e:
            raise RemoteDataError(502, f"Invalid JSON from data service: {e}") from e
        return body if isinstance(body, dict) else {"data": body}
