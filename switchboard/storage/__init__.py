"""Collaborator stores: knowledge graph, cache, agent definitions and CRM."""

from .protocols import AgentDefinitionStore, CrmClient, GraphStore, KeyValueCache
from .graph_store import Neo4jHttpStore, http_base_url
from .cache import MemoryCache, NullCache, RedisCache
from .agent_store import MemoryAgentStore, SupabaseAgentStore
from .crm_client import FolkClient

__all__ = [
    # Protocols
    "AgentDefinitionStore",
    "CrmClient",
    "GraphStore",
    "KeyValueCache",
    # Implementations
    "FolkClient",
    "MemoryAgentStore",
    "MemoryCache",
    "Neo4jHttpStore",
    "NullCache",
    "RedisCache",
    "SupabaseAgentStore",
    "http_base_url",
]
