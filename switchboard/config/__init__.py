"""Configuration system for model backends, stores and the reasoning loop."""

from .loader import (
    load_config,
    load_config_from_env,
    load_config_from_yaml,
    available_profiles,
    ProfileConfig,
    ProviderConfig,
    OrchestratorConfig,
    SessionConfig,
    GraphStoreConfig,
    CacheConfig,
    AgentStoreConfig,
    CrmConfig,
    ApiConfig,
)
from .factory import (
    MockChatProvider,
    Services,
    create_provider,
    create_router,
    create_graph_store,
    create_cache,
    create_agent_store,
    create_crm_client,
    create_tool_registry,
    create_session_manager,
    create_orchestrator,
)

__all__ = [
    # Loader
    "load_config",
    "load_config_from_env",
    "load_config_from_yaml",
    "available_profiles",
    "ProfileConfig",
    "ProviderConfig",
    "OrchestratorConfig",
    "SessionConfig",
    "GraphStoreConfig",
    "CacheConfig",
    "AgentStoreConfig",
    "CrmConfig",
    "ApiConfig",
    # Factory
    "MockChatProvider",
    "Services",
    "create_provider",
    "create_router",
    "create_graph_store",
    "create_cache",
    "create_agent_store",
    "create_crm_client",
    "create_tool_registry",
    "create_session_manager",
    "create_orchestrator",
]
