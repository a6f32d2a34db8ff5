"""
Remote fetcher for event type listings.

Issues a single GET against a provider's base URL and returns the decoded
JSON array. Retries are left to the scheduler: a failed fetch aborts the
current cycle and the next tick tries again.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

import httpx

from ..errors import RemoteFetchError

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {"Accept": "application/json"}


class RemoteFetcher:
    """Async HTTP fetcher built on httpx.

    Pass ``client`` to share a connection pool (or a mock transport in
    tests); otherwise a short-lived client is opened per fetch.
    """

    def __init__(
        self,
        *,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
        headers: Optional[Mapping[str, str]] = None,
    ):
        self._client = client
        self.timeout = timeout
        self.headers: Dict[str, str] = {**DEFAULT_HEADERS, **(headers or {})}

    async def fetch(self, base_url: str) -> List[Any]:
        """GET ``base_url`` and return the JSON array it serves."""
        if self._client is not None:
            response = await self._get(self._client, base_url)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await self._get(client, base_url)

        if not response.is_success:
            raise RemoteFetchError(
                f"GET {base_url} failed: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise RemoteFetchError(
                f"GET {base_url} returned invalid JSON", status_code=response.status_code
            ) from e

        if not isinstance(payload, list):
            raise RemoteFetchError(
                f"GET {base_url} returned {type(payload).__name__}, expected a JSON array",
                status_code=response.status_code,
            )

        logger.debug(f"Fetched {len(payload)} records from {base_url}")
        return payload

    async def _get(self, client: httpx.AsyncClient, url: str) -> httpx.Response:
        try:
            return await client.get(url, headers=self.headers, timeout=self.timeout)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise RemoteFetchError(f"GET {url} failed: {type(e).__name__}: {e}") from e


__all__ = ["RemoteFetcher"]
