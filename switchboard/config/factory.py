"""Factory functions to create collaborators from configuration."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..llm.protocols import (
    Backend,
    ChatProvider,
    Message,
    MessageRole,
    ProviderResponse,
    StopReason,
    ToolSchema,
)

if TYPE_CHECKING:
    from ..agents import AgentResolver, Orchestrator, SessionManager
    from ..llm.router import ProviderRouter
    from ..storage.protocols import AgentDefinitionStore, CrmClient, GraphStore, KeyValueCache
    from ..tools.registry import ToolRegistry
    from .loader import (
        AgentStoreConfig,
        CacheConfig,
        CrmConfig,
        GraphStoreConfig,
        OrchestratorConfig,
        ProfileConfig,
        ProviderConfig,
        SessionConfig,
    )

logger = logging.getLogger(__name__)


class MockChatProvider:
    """Mock provider for testing: answers immediately, never calls tools."""

    def __init__(self, backend: Backend):
        self.backend = backend

    async def chat(
        self,
        messages: list[Message],
        system_prompt: str | None = None,
        tools: list[ToolSchema] | None = None,
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 4096,
    ) -> ProviderResponse:
        """Return a mock completion echoing the latest user message."""
        last_user = next(
            (m.content for m in reversed(messages) if m.role == MessageRole.USER), ""
        )
        return ProviderResponse(
            text=f"[Mock {self.backend.value} response to: {last_user[:50]}]",
            stop_reason=StopReason.STOP,
            model=model or "mock",
            backend=self.backend,
        )

    async def close(self) -> None:
        pass


def create_provider(config: ProviderConfig, slot: Backend) -> ChatProvider:
    """Create a model backend from configuration.

    Args:
        config: Provider configuration
        slot: Router slot the provider fills

    Returns:
        ChatProvider instance (TogetherAdapter, AnthropicAdapter, or Mock)

    Raises:
        ValueError: If the backend does not fit the slot
    """
    if config.backend == "mock":
        return MockChatProvider(slot)

    if config.backend != slot.value:
        raise ValueError(
            f"The {slot.value} slot cannot use the {config.backend} backend"
        )

    if config.backend == "together":
        from ..llm import TogetherAdapter

        return TogetherAdapter(
            api_key=config.api_key,
            model=config.model,
            base_url=config.base_url,
            timeout=config.timeout,
        )

    elif config.backend == "anthropic":
        from ..llm import AnthropicAdapter

        return AnthropicAdapter(
            api_key=config.api_key,
            model=config.model,
            timeout=config.timeout,
        )

    else:
        raise ValueError(f"Unsupported provider backend: {config.backend}")


def create_router(
    together: ChatProvider,
    anthropic: ChatProvider,
    config: OrchestratorConfig,
) -> ProviderRouter:
    """Create the sensitivity router over the two backends."""
    from ..llm.router import ProviderRouter

    return ProviderRouter(
        together=together,
        anthropic=anthropic,
        timeout=config.provider_timeout,
        max_tokens=config.max_tokens,
    )


def create_graph_store(config: GraphStoreConfig) -> GraphStore:
    """Create the Neo4j knowledge-graph store."""
    from ..storage.graph_store import Neo4jHttpStore

    return Neo4jHttpStore(
        uri=config.uri,
        username=config.username,
        password=config.password,
        database=config.database,
        timeout=config.timeout,
    )


def create_cache(config: CacheConfig) -> KeyValueCache:
    """Create the tool result cache.

    Raises:
        ValueError: If backend type is not supported or required fields are missing
    """
    if config.backend == "redis":
        from ..storage.cache import RedisCache

        if not config.url:
            raise ValueError("Redis cache backend requires 'url' in config")

        return RedisCache(url=config.url, key_prefix=config.key_prefix)

    elif config.backend == "memory":
        from ..storage.cache import MemoryCache

        return MemoryCache()

    elif config.backend == "none":
        from ..storage.cache import NullCache

        return NullCache()

    else:
        raise ValueError(f"Unsupported cache backend: {config.backend}")


def create_agent_store(config: AgentStoreConfig) -> AgentDefinitionStore:
    """Create the store for user agents and sessions.

    Raises:
        ValueError: If backend type is not supported or required fields are missing
    """
    if config.backend == "supabase":
        from ..storage.agent_store import SupabaseAgentStore

        if not config.url or not config.key:
            raise ValueError("Supabase agent store requires 'url' and 'key' in config")

        return SupabaseAgentStore(url=config.url, key=config.key, timeout=config.timeout)

    elif config.backend == "memory":
        from ..storage.agent_store import MemoryAgentStore

        return MemoryAgentStore()

    else:
        raise ValueError(f"Unsupported agent store backend: {config.backend}")


def create_crm_client(config: CrmConfig) -> CrmClient:
    """Create the Folk CRM client."""
    from ..storage.crm_client import FolkClient

    return FolkClient(
        api_keys=config.api_keys,
        base_url=config.base_url,
        timeout=config.timeout,
    )


def create_tool_registry(
    graph_store: GraphStore,
    cache: KeyValueCache,
    crm_client: CrmClient,
) -> ToolRegistry:
    """Create the registry holding every tool source."""
    from ..tools import ToolRegistry, bid_tools, crm_tools, graph_tools

    return ToolRegistry(
        [
            *graph_tools(graph_store, cache),
            *bid_tools(graph_store),
            *crm_tools(crm_client),
        ]
    )


def create_session_manager(
    agent_store: AgentDefinitionStore, config: SessionConfig
) -> SessionManager:
    from ..agents import SessionManager

    return SessionManager(
        store=agent_store,
        max_messages=config.max_messages,
        timeout=config.timeout,
    )


def create_orchestrator(
    router: ProviderRouter,
    resolver: AgentResolver,
    session_manager: SessionManager,
    config: OrchestratorConfig,
) -> Orchestrator:
    from ..agents import Orchestrator

    return Orchestrator(
        router=router,
        resolver=resolver,
        session_manager=session_manager,
        max_iterations=config.max_iterations,
        tool_timeout=config.tool_timeout,
    )


class Services:
    """
    Every collaborator built from one profile, with a shared lifecycle.

    Usage:
        async with Services(load_config("dev")) as services:
            response = await services.orchestrator.run_query(request)
    """

    def __init__(self, profile: ProfileConfig | None = None):
        from .loader import load_config

        self.profile = profile or load_config()

        self.together = create_provider(self.profile.together, Backend.TOGETHER)
        self.anthropic = create_provider(self.profile.anthropic, Backend.ANTHROPIC)
        self.router = create_router(self.together, self.anthropic, self.profile.orchestrator)

        self.graph_store = create_graph_store(self.profile.graph)
        self.cache = create_cache(self.profile.cache)
        self.agent_store = create_agent_store(self.profile.agent_store)
        self.crm_client = create_crm_client(self.profile.crm)

        self.registry = create_tool_registry(self.graph_store, self.cache, self.crm_client)
        self.session_manager = create_session_manager(self.agent_store, self.profile.session)

        from ..agents import AgentResolver

        self.resolver = AgentResolver(
            registry=self.registry,
            agent_store=self.agent_store,
            session_manager=self.session_manager,
        )
        self.orchestrator = create_orchestrator(
            self.router, self.resolver, self.session_manager, self.profile.orchestrator
        )

    def _resources(self) -> list:
        return [
            self.together,
            self.anthropic,
            self.graph_store,
            self.cache,
            self.agent_store,
            self.crm_client,
        ]

    async def connect(self) -> None:
        """Open every configured store; unconfigured ones fail on first use."""
        for resource in self._resources():
            connect = getattr(resource, "connect", None)
            if connect is not None and getattr(resource, "configured", True):
                await connect()
        logger.info(f"Services ready ({len(self.registry)} tools)")

    async def close(self) -> None:
        for resource in self._resources():
            close = getattr(resource, "close", None)
            if close is None:
                continue
            try:
                await close()
            except Exception as e:
                logger.warning(f"Failed to close {type(resource).__name__}: {e}")

    async def __aenter__(self) -> "Services":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def status(self) -> dict:
        """Which credentials are configured, keyed by collaborator."""
        return {
            "together": {"configured": getattr(self.together, "configured", True)},
            "anthropic": {"configured": getattr(self.anthropic, "configured", True)},
            "neo4j": {"configured": getattr(self.graph_store, "configured", False)},
            "cache": {"backend": self.profile.cache.backend},
            "agent_store": {"backend": self.profile.agent_store.backend},
            "folk": {"configured": self.crm_client.configured},
        }

    async def check_connections(self) -> dict[str, bool]:
        """Round-trip every store that can verify its connection."""
        stores = {"neo4j": self.graph_store, "cache": self.cache, "agent_store": self.agent_store}
        results = {}
        for name, store in stores.items():
            verify = getattr(store, "verify_connection", None)
            if verify is None:
                continue
            results[name] = bool(getattr(store, "configured", True)) and await verify()
        return results
