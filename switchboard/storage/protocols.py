"""Protocol definitions for the collaborators the engine and tools depend on."""

from typing import Any, Protocol, runtime_checkable

from ..models import AgentDefinition, AgentSession


@runtime_checkable
class GraphStore(Protocol):
    """Protocol for the entertainment-industry knowledge graph."""

    async def read(
        self, query: str, params: dict[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        """
        Run a read-only query.

        Args:
            query: Cypher statement
            params: Statement parameters

        Returns:
            One dict per result row, keyed by the returned field names

        Raises:
            StoreError: If the query fails
        """
        ...

    async def write(
        self, query: str, params: dict[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        """Run a query in write mode. Same contract as ``read``."""
        ...


@runtime_checkable
class KeyValueCache(Protocol):
    """Protocol for a string cache with per-key expiry."""

    async def get(self, key: str) -> str | None:
        ...

    async def set(self, key: str, value: str, ttl_seconds: int = 300) -> None:
        ...

    async def delete(self, key: str) -> None:
        ...


@runtime_checkable
class AgentDefinitionStore(Protocol):
    """Protocol for stored user agents and their conversation sessions."""

    async def get_agent(self, agent_id: str) -> AgentDefinition | None:
        """Get a definition by id, or None if it does not exist."""
        ...

    async def list_agents(self, user_id: str) -> list[AgentDefinition]:
        """Active definitions owned by a user, newest first."""
        ...

    async def create_agent(
        self, user_id: str, fields: dict[str, Any]
    ) -> AgentDefinition:
        ...

    async def update_agent(
        self, agent_id: str, fields: dict[str, Any]
    ) -> AgentDefinition:
        ...

    async def deactivate_agent(self, agent_id: str) -> None:
        ...

    async def find_session(
        self, user_id: str, agent_id: str, conversation_id: str
    ) -> AgentSession | None:
        """Look up the session for the key without creating one."""
        ...

    async def get_or_create_session(
        self, user_id: str, agent_id: str, conversation_id: str
    ) -> AgentSession:
        """
        Find the session for the key, refreshing its last-active marker, or
        create an empty one.
        """
        ...

    async def update_session_state(
        self, session_id: str, state: dict[str, Any]
    ) -> None:
        """Replace a session's state and refresh its last-active marker."""
        ...


@runtime_checkable
class CrmClient(Protocol):
    """Protocol for the contact-management system."""

    @property
    def configured(self) -> bool:
        ...

    async def search_contacts(
        self, query: str, limit: int = 20
    ) -> list[dict[str, Any]]:
        ...

    async def get_contact(self, contact_id: str) -> dict[str, Any]:
        ...

    async def list_groups(self, limit: int = 50) -> list[dict[str, Any]]:
        ...
