"""Stores for user agent definitions and conversation sessions."""

from __future__ import annotations

import logging
import uuid
from typing import Any

import httpx

from ..errors import ConfigurationError, StoreError
from ..models import AgentDefinition, AgentSession, utcnow

logger = logging.getLogger(__name__)

AGENTS_TABLE = "user_agents"
SESSIONS_TABLE = "agent_sessions"


def _row_to_definition(row: dict[str, Any]) -> AgentDefinition:
    # Null columns fall back to model defaults
    return AgentDefinition.model_validate({k: v for k, v in row.items() if v is not None})


def _row_to_session(row: dict[str, Any]) -> AgentSession:
    return AgentSession.model_validate({k: v for k, v in row.items() if v is not None})


class SupabaseAgentStore:
    """Agent store backed by Supabase tables through the PostgREST API.

    Tables:
        user_agents: one row per user-defined agent
        agent_sessions: one row per (user_id, agent_id, conversation_id)
    """

    def __init__(
        self,
        url: str | None,
        key: str | None,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the store.

        Args:
            url: Supabase project URL
            key: Service-role (or anon) API key
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.url = url
        self.key = key
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def configured(self) -> bool:
        return bool(self.url and self.key)

    async def connect(self) -> None:
        if self._client is not None:
            return
        if not self.configured:
            raise ConfigurationError(
                "SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set"
            )
        self._client = httpx.AsyncClient(
            base_url=f"{self.url.rstrip('/')}/rest/v1",
            timeout=httpx.Timeout(self.timeout),
            headers={
                "apikey": self.key,
                "Authorization": f"Bearer {self.key}",
                "Content-Type": "application/json",
                "Prefer": "return=representation",
            },
            transport=self._transport,
        )
        logger.info("Connected to Supabase")

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("Disconnected from Supabase")

    async def __aenter__(self) -> "SupabaseAgentStore":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _request(
        self,
        method: str,
        table: str,
        params: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        await self.connect()
        try:
            response = await self._client.request(
                method, f"/{table}", params=params, json=json
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"Supabase {method} {table} failed: {e.response.text}")
            raise StoreError(
                f"Supabase {method} {table} failed ({e.response.status_code})"
            ) from e
        except httpx.HTTPError as e:
            raise StoreError(f"Supabase {method} {table} failed: {e}") from e

        if not response.content:
            return []
        data = response.json()
        return data if isinstance(data, list) else [data]

    # -------------------------------------------------------------------------
    # Agent definitions
    # -------------------------------------------------------------------------

    async def get_agent(self, agent_id: str) -> AgentDefinition | None:
        rows = await self._request(
            "GET", AGENTS_TABLE, params={"select": "*", "id": f"eq.{agent_id}"}
        )
        return _row_to_definition(rows[0]) if rows else None

    async def list_agents(self, user_id: str) -> list[AgentDefinition]:
        rows = await self._request(
            "GET",
            AGENTS_TABLE,
            params={
                "select": "*",
                "user_id": f"eq.{user_id}",
                "is_active": "eq.true",
                "order": "created_at.desc",
            },
        )
        return [_row_to_definition(row) for row in rows]

    async def create_agent(
        self, user_id: str, fields: dict[str, Any]
    ) -> AgentDefinition:
        rows = await self._request(
            "POST", AGENTS_TABLE, json={**fields, "user_id": user_id, "is_active": True}
        )
        if not rows:
            raise StoreError("Supabase returned no row for the created agent")
        return _row_to_definition(rows[0])

    async def update_agent(
        self, agent_id: str, fields: dict[str, Any]
    ) -> AgentDefinition:
        rows = await self._request(
            "PATCH",
            AGENTS_TABLE,
            params={"id": f"eq.{agent_id}"},
            json={**fields, "updated_at": utcnow().isoformat()},
        )
        if not rows:
            raise StoreError(f"Agent not found: {agent_id}")
        return _row_to_definition(rows[0])

    async def deactivate_agent(self, agent_id: str) -> None:
        await self._request(
            "PATCH",
            AGENTS_TABLE,
            params={"id": f"eq.{agent_id}"},
            json={"is_active": False, "updated_at": utcnow().isoformat()},
        )

    # -------------------------------------------------------------------------
    # Sessions
    # -------------------------------------------------------------------------

    async def find_session(
        self, user_id: str, agent_id: str, conversation_id: str
    ) -> AgentSession | None:
        rows = await self._request(
            "GET",
            SESSIONS_TABLE,
            params={
                "select": "*",
                "user_id": f"eq.{user_id}",
                "agent_id": f"eq.{agent_id}",
                "conversation_id": f"eq.{conversation_id}",
                "limit": "1",
            },
        )
        return _row_to_session(rows[0]) if rows else None

    async def get_or_create_session(
        self, user_id: str, agent_id: str, conversation_id: str
    ) -> AgentSession:
        session = await self.find_session(user_id, agent_id, conversation_id)
        if session is not None:
            now = utcnow()
            await self._request(
                "PATCH",
                SESSIONS_TABLE,
                params={"id": f"eq.{session.id}"},
                json={"last_active": now.isoformat()},
            )
            return session.model_copy(update={"last_active": now})

        rows = await self._request(
            "POST",
            SESSIONS_TABLE,
            json={
                "user_id": user_id,
                "agent_id": agent_id,
                "conversation_id": conversation_id,
                "state": {},
            },
        )
        if not rows:
            raise StoreError("Supabase returned no row for the created session")
        logger.info(f"Created session for conversation {conversation_id}")
        return _row_to_session(rows[0])

    async def update_session_state(
        self, session_id: str, state: dict[str, Any]
    ) -> None:
        await self._request(
            "PATCH",
            SESSIONS_TABLE,
            params={"id": f"eq.{session_id}"},
            json={"state": state, "last_active": utcnow().isoformat()},
        )

    async def verify_connection(self) -> bool:
        try:
            await self._request(
                "GET", AGENTS_TABLE, params={"select": "id", "limit": "1"}
            )
        except (StoreError, ConfigurationError):
            return False
        return True


class MemoryAgentStore:
    """In-process agent store for development and tests."""

    def __init__(self):
        self.agents: dict[str, AgentDefinition] = {}
        self.sessions: dict[tuple[str, str, str], AgentSession] = {}

    @property
    def configured(self) -> bool:
        return True

    async def get_agent(self, agent_id: str) -> AgentDefinition | None:
        return self.agents.get(agent_id)

    async def list_agents(self, user_id: str) -> list[AgentDefinition]:
        agents = [
            agent
            for agent in self.agents.values()
            if agent.user_id == user_id and agent.is_active
        ]
        return sorted(agents, key=lambda a: a.created_at, reverse=True)

    async def create_agent(
        self, user_id: str, fields: dict[str, Any]
    ) -> AgentDefinition:
        agent = AgentDefinition(id=str(uuid.uuid4()), user_id=user_id, **fields)
        self.agents[agent.id] = agent
        return agent

    async def update_agent(
        self, agent_id: str, fields: dict[str, Any]
    ) -> AgentDefinition:
        current = self.agents.get(agent_id)
        if current is None:
            raise StoreError(f"Agent not found: {agent_id}")
        updated = AgentDefinition.model_validate(
            {**current.model_dump(), **fields, "updated_at": utcnow()}
        )
        self.agents[agent_id] = updated
        return updated

    async def deactivate_agent(self, agent_id: str) -> None:
        if agent_id in self.agents:
            await self.update_agent(agent_id, {"is_active": False})

    async def find_session(
        self, user_id: str, agent_id: str, conversation_id: str
    ) -> AgentSession | None:
        return self.sessions.get((user_id, agent_id, conversation_id))

    async def get_or_create_session(
        self, user_id: str, agent_id: str, conversation_id: str
    ) -> AgentSession:
        key = (user_id, agent_id, conversation_id)
        session = self.sessions.get(key)
        if session is None:
            session = AgentSession(
                id=str(uuid.uuid4()),
                user_id=user_id,
                agent_id=agent_id,
                conversation_id=conversation_id,
            )
        else:
            session = session.model_copy(update={"last_active": utcnow()})
        self.sessions[key] = session
        return session

    async def update_session_state(
        self, session_id: str, state: dict[str, Any]
    ) -> None:
        for key, session in self.sessions.items():
            if session.id == session_id:
                self.sessions[key] = session.model_copy(
                    update={"state": state, "last_active": utcnow()}
                )
                return
        raise StoreError(f"Session not found: {session_id}")

    async def close(self) -> None:
        return None
