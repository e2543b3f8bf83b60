"""Neo4j knowledge-graph client over the HTTP Query API."""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urlsplit

import httpx

from ..errors import ConfigurationError, StoreError

logger = logging.getLogger(__name__)

# Driver URI schemes and the HTTP scheme serving the same host
_SECURE_SCHEMES = {"neo4j+s", "neo4j+ssc", "bolt+s", "bolt+ssc", "https"}
_BOLT_PORT = 7687
_HTTP_PORT = 7474


def http_base_url(uri: str) -> str:
    """
    Map a driver-style Neo4j URI to the base URL of its HTTP API.

    ``neo4j+s://abc.databases.neo4j.io`` becomes
    ``https://abc.databases.neo4j.io`` and ``bolt://localhost:7687`` becomes
    ``http://localhost:7474``. HTTP(S) URIs are returned unchanged.
    """
    parts = urlsplit(uri)
    if parts.scheme in ("http", "https"):
        return uri.rstrip("/")

    scheme = "https" if parts.scheme in _SECURE_SCHEMES else "http"
    host = parts.hostname or "localhost"
    port = parts.port
    if port == _BOLT_PORT:
        port = _HTTP_PORT
    elif port is None and scheme == "http":
        port = _HTTP_PORT
    return f"{scheme}://{host}:{port}" if port else f"{scheme}://{host}"


class Neo4jHttpStore:
    """Graph store backed by the Neo4j Query API (``/db/{name}/query/v2``).

    Each statement runs in its own implicit transaction with the access mode
    set from the caller's intent, so reads can be routed to replicas.
    """

    def __init__(
        self,
        uri: str | None,
        username: str = "neo4j",
        password: str | None = None,
        database: str = "neo4j",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the store.

        Args:
            uri: Driver-style or HTTP URI of the server
            username: Basic-auth user
            password: Basic-auth password
            database: Database name
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.uri = uri
        self.username = username
        self.password = password
        self.database = database
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def configured(self) -> bool:
        return bool(self.uri and self.password)

    @property
    def endpoint(self) -> str:
        return f"{http_base_url(self.uri or '')}/db/{self.database}/query/v2"

    async def connect(self) -> None:
        """Open the HTTP client."""
        if self._client is not None:
            return
        if not self.configured:
            raise ConfigurationError("NEO4J_URI and NEO4J_PASSWORD must be set")

        self._client = httpx.AsyncClient(
            auth=(self.username, self.password or ""),
            timeout=httpx.Timeout(self.timeout),
            headers={"Accept": "application/json", "Content-Type": "application/json"},
            transport=self._transport,
        )
        logger.info(f"Connected to Neo4j at {self.endpoint}")

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("Disconnected from Neo4j")

    async def __aenter__(self) -> "Neo4jHttpStore":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def read(
        self, query: str, params: dict[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        return await self._run(query, params, access_mode="READ")

    async def write(
        self, query: str, params: dict[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        return await self._run(query, params, access_mode="WRITE")

    async def verify_connection(self) -> bool:
        """Check that the server answers a trivial statement."""
        try:
            records = await self.read("RETURN 1 AS test")
        except (StoreError, ConfigurationError):
            return False
        return bool(records) and records[0].get("test") == 1

    async def _run(
        self, query: str, params: dict[str, Any] | None, access_mode: str
    ) -> list[dict[str, Any]]:
        if self._client is None:
            await self.connect()

        try:
            response = await self._client.post(
                self.endpoint,
                json={
                    "statement": query,
                    "parameters": params or {},
                    "accessMode": access_mode,
                },
            )
        except httpx.HTTPError as e:
            raise StoreError(f"Neo4j request failed: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = {}

        errors = body.get("errors") if isinstance(body, dict) else None
        if response.is_error or errors:
            detail = errors[0].get("message") if errors else response.text
            logger.error(f"Neo4j query failed ({response.status_code}): {detail}")
            raise StoreError(f"Neo4j query failed: {detail}")

        data = body.get("data") or {}
        fields = data.get("fields") or []
        return [dict(zip(fields, row)) for row in data.get("values") or []]
