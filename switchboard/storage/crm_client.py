"""Folk CRM HTTP client with multi-workspace key fallback."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..errors import ConfigurationError, StoreError

logger = logging.getLogger(__name__)


class FolkClient:
    """Client for the Folk API (https://api.folk.app/v1).

    Each configured API key belongs to a different workspace. Requests try
    the keys in order and return the first successful response.
    """

    def __init__(
        self,
        api_keys: list[str] | None = None,
        base_url: str = "https://api.folk.app/v1",
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_keys = [key for key in (api_keys or []) if key]
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def configured(self) -> bool:
        return bool(self.api_keys)

    async def connect(self) -> None:
        if self._client is not None:
            return
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout),
            headers={"Content-Type": "application/json"},
            transport=self._transport,
        )

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "FolkClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """GET ``path`` with each key in turn until one succeeds.

        Raises:
            ConfigurationError: If no API key is configured
            StoreError: With the last failure if every key fails
        """
        if not self.api_keys:
            raise ConfigurationError(
                "No FOLK_API_KEY configured (set FOLK_API_KEY_1 or FOLK_API_KEY_2)"
            )
        await self.connect()

        last_error: Exception | None = None
        for index, key in enumerate(self.api_keys, start=1):
            try:
                response = await self._client.get(
                    path,
                    params=params,
                    headers={"Authorization": f"Bearer {key}"},
                )
                response.raise_for_status()
                return response.json()
            except httpx.HTTPStatusError as e:
                last_error = e
                logger.warning(
                    f"Folk API {e.response.status_code} for {path} with key #{index}"
                )
            except httpx.HTTPError as e:
                last_error = e
                logger.warning(f"Folk API request failed with key #{index}: {e}")

        raise StoreError(f"Folk API request failed: {last_error}")

    @staticmethod
    def _items(data: Any) -> list[dict[str, Any]]:
        if isinstance(data, dict):
            items = data.get("data")
            if items is None:
                items = data.get("items")
            if isinstance(items, dict):
                # Paginated responses nest the list one level deeper
                items = items.get("items")
            return list(items or [])
        return list(data or [])

    async def search_contacts(
        self, query: str, limit: int = 20
    ) -> list[dict[str, Any]]:
        data = await self._get("/people", params={"search": query, "limit": limit})
        return self._items(data)

    async def get_contact(self, contact_id: str) -> dict[str, Any]:
        return await self._get(f"/people/{contact_id}")

    async def list_groups(self, limit: int = 50) -> list[dict[str, Any]]:
        data = await self._get("/groups", params={"limit": limit})
        return self._items(data)
