"""HTTP client for the remote journal server.

Every call sends the team's shared API key in the X-API-Key header. Network
failures and non-2xx responses surface as TransportError / RemoteError; the
caller decides whether that is fatal.
"""

from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import quote

import httpx

from .config import DEFAULT_REMOTE_TIMEOUT, RemoteConfig
from .errors import RemoteError, TransportError
from .models import DateRange, format_iso

logger = logging.getLogger(__name__)


def build_search_request(
    query: str,
    limit: int,
    min_score: float,
    sections: Optional[list[str]] = None,
    date_range: Optional[DateRange] = None,
) -> dict[str, Any]:
    """Body for POST /teams/{team}/search. Unset filters are left out."""
    request: dict[str, Any] = {
        "query": query,
        "limit": limit,
        "similarity_threshold": min_score,
    }
    if sections:
        request["sections"] = list(sections)
    if date_range is not None:
        if date_range.start is not None:
            request["date_from"] = format_iso(date_range.start)
        if date_range.end is not None:
            request["date_to"] = format_iso(date_range.end)
    return request


class RemoteClient:
    """Async client for one team's journal on the remote server."""

    def __init__(
        self,
        config: RemoteConfig,
        *,
        timeout: float = DEFAULT_REMOTE_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self._team_path = f"/teams/{quote(config.team_id, safe='')}"
        self._client = httpx.AsyncClient(
            base_url=config.server_url,
            headers={"X-API-Key": config.api_key},
            timeout=timeout,
            transport=transport,
        )

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._client.request(method, self._team_path + path, **kwargs)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise TransportError(str(e) or type(e).__name__) from e

    @staticmethod
    def _check(response: httpx.Response) -> None:
        if not response.is_success:
            raise RemoteError(response.status_code, response.text, response.reason_phrase)

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise TransportError(f"Invalid JSON from remote server: {e}") from e

    async def post_entry(self, payload: dict[str, Any]) -> None:
        """POST /teams/{team}/entries"""
        response = await self._request("POST", "/entries", json=payload)
        self._check(response)
        logger.debug("Posted entry to remote server (timestamp=%s)", payload.get("timestamp"))

    async def search(self, request: dict[str, Any]) -> dict[str, Any]:
        """POST /teams/{team}/search -> {results, total_count}"""
        response = await self._request("POST", "/search", json=request)
        self._check(response)
        data = self._json(response)
        if not isinstance(data, dict):
            raise TransportError("Remote search response is not an object")
        return data

    async def list_entries(self, limit: Optional[int] = None, offset: Optional[int] = None) -> dict[str, Any]:
        """GET /teams/{team}/entries -> {entries, total_count}"""
        params: dict[str, int] = {}
        if limit:
            params["limit"] = limit
        if offset is not None:
            params["offset"] = offset

        response = await self._request("GET", "/entries", params=params)
        self._check(response)
        data = self._json(response)
        if not isinstance(data, dict):
            raise TransportError("Remote listing response is not an object")
        return {
            "entries": data.get("entries") or [],
            "total_count": data.get("total_count") or 0,
        }

    async def get_entry(self, entry_id: str) -> Optional[dict[str, Any]]:
        """GET /teams/{team}/entries/{id}; None on 404."""
        response = await self._request("GET", f"/entries/{quote(entry_id, safe='')}")
        if response.status_code == 404:
            return None
        self._check(response)
        data = self._json(response)
        if not isinstance(data, dict):
            raise TransportError("Remote entry response is not an object")
        return data

    async def aclose(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()
