"""Model provider integrations with protocol-based adapter pattern."""

from .protocols import (
    Backend,
    ChatProvider,
    Message,
    MessageRole,
    ProviderResponse,
    StopReason,
    ToolCall,
    ToolSchema,
    Usage,
)
from .adapters import AnthropicAdapter, TogetherAdapter
from .router import ProviderRouter, select_backend

__all__ = [
    # Protocols
    "Backend",
    "ChatProvider",
    "Message",
    "MessageRole",
    "ProviderResponse",
    "StopReason",
    "ToolCall",
    "ToolSchema",
    "Usage",
    # Adapters
    "AnthropicAdapter",
    "TogetherAdapter",
    # Routing
    "ProviderRouter",
    "select_backend",
]
