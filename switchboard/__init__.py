"""Switchboard: routes natural-language queries to tool-using intelligence agents."""

__version__ = "0.1.0"

from .errors import ConfigurationError, ProviderError, StoreError, SwitchboardError
from .models import AgentType, QueryRequest, QueryResponse, RoutingStrategy, UserContext

__all__ = [
    "__version__",
    # Errors
    "ConfigurationError",
    "ProviderError",
    "StoreError",
    "SwitchboardError",
    # Models
    "AgentType",
    "QueryRequest",
    "QueryResponse",
    "RoutingStrategy",
    "UserContext",
]
