"""Async HTTP client for the complaint backend.

Thin wrapper over ``httpx.AsyncClient`` exposing the three read endpoints the
map needs. Transport and HTTP status failures are raised as FetchError so the
stores can turn them into a retryable error marker.
"""

import json
import logging
from typing import Any, Dict, Mapping, Optional

import httpx

from civicmap.errors import FetchError
from civicmap.models import TerritoryLevel

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:3000/api/v1"
DEFAULT_TIMEOUT = 30.0


class CivicLensClient:
    """Read-only client for ``complaints``, ``complaints/heatmap`` and ``territories``.

    Args:
        base_url: API root, e.g. ``http://localhost:3000/api/v1``.
        timeout: Request timeout in seconds.
        token: Optional bearer token sent as ``Authorization``.
        http_client: Pre-built httpx.AsyncClient. When given, the caller owns
            it and aclose() leaves it open.
        transport: httpx transport for the internally built client (tests
            pass an httpx.MockTransport).
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        token: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/") + "/"
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            headers=headers,
            transport=transport,
        )

    @classmethod
    def from_config(cls, config: Mapping[str, Any], transport=None) -> "CivicLensClient":
        api = config.get("api", {})
        return cls(
            base_url=api.get("base_url", DEFAULT_BASE_URL),
            timeout=api.get("timeout", DEFAULT_TIMEOUT),
            token=api.get("token"),
            transport=transport,
        )

    async def _get(self, path: str, params: Optional[Mapping[str, Any]] = None):
        """GET ``path`` and return the decoded JSON body.

        Returns:
            The decoded body, or None when it is not valid JSON.

        Raises:
            FetchError: On transport failure or a non-2xx status.
        """
        query = {k: v for k, v in (params or {}).items() if v is not None}
        try:
            response = await self._http.get(path, params=query)
        except httpx.HTTPError as e:
            raise FetchError(f"Request to {path} failed: {e}") from e

        if response.status_code == 401:
            logger.warning("Authentication failed for %s; check the API token", response.url)
        if response.is_error:
            raise FetchError(
                f"{path} returned HTTP {response.status_code}",
                status_code=response.status_code,
                url=str(response.url),
            )
        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.warning("Undecodable response body from %s", response.url)
            return None

    async def get_complaints(self, params: Optional[Mapping[str, Any]] = None):
        return await self._get("complaints", params)

    async def get_heatmap(self, params: Optional[Mapping[str, Any]] = None):
        return await self._get("complaints/heatmap", params)

    async def get_territories(self, level: TerritoryLevel, city: Optional[str] = None):
        params: Dict[str, Any] = {"level": TerritoryLevel(level).value}
        if city:
            params["city"] = city
        return await self._get("territories", params)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def __aenter__(self) -> "CivicLensClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()
