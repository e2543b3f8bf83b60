"""Request, response and stored-record models shared across the service."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from .llm.protocols import Message

SESSION_STATE_VERSION = 1


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AgentType(str, Enum):
    """Agent categories a query can be routed to."""

    SALES = "sales"
    TALENT = "talent"
    BIDDING = "bidding"
    CUSTOM = "custom"


class UserRole(str, Enum):
    """Roles carried in the precomputed user context."""

    SALESPERSON = "SALESPERSON"
    ANALYST = "ANALYST"
    MANAGER = "MANAGER"
    LEADERSHIP = "LEADERSHIP"


class RoutingStrategy(str, Enum):
    """How the acting agent configuration was chosen."""

    DIRECT = "direct"
    AUTO_CLASSIFIED = "auto_classified"
    USER_AGENT = "user_agent"
    FALLBACK_CLASSIFIED = "fallback_classified"


class UserContext(BaseModel):
    """Caller identity and the access-level signal used for provider routing."""

    user_id: str
    role: UserRole = UserRole.SALESPERSON
    data_sensitivity: int = Field(default=1, ge=1, le=6)
    department: str | None = None


class QueryRequest(BaseModel):
    """A query submitted to the engine."""

    message: str
    user_context: UserContext
    conversation_id: str
    agent_id: str | None = None
    agent_type: AgentType | None = None


class AgentInfo(BaseModel):
    """How a query was routed and which tools ran."""

    type: str
    primary_agent: str
    routing_strategy: str
    agents_used: list[str] | None = None


class QueryResponse(BaseModel):
    """The engine's answer to a query."""

    content: str
    agent_info: AgentInfo
    conversation_id: str
    timestamp: str


# -----------------------------------------------------------------------------
# Stored records
# -----------------------------------------------------------------------------


class AgentDefinition(BaseModel):
    """A user-owned agent definition (``user_agents`` row)."""

    id: str
    user_id: str
    agent_name: str
    agent_type: AgentType
    system_prompt: str | None = None
    tools_enabled: list[str] = Field(default_factory=list)
    model_preference: str = "together/meta-llama/Llama-3.3-70B-Instruct-Turbo"
    temperature: float = 0.7
    is_active: bool = True
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class AgentDefinitionCreate(BaseModel):
    """Fields a caller supplies to create an agent definition."""

    agent_name: str
    agent_type: AgentType
    system_prompt: str | None = None
    tools_enabled: list[str] = Field(default_factory=list)
    model_preference: str = "together/meta-llama/Llama-3.3-70B-Instruct-Turbo"
    temperature: float = Field(default=0.7, ge=0, le=2)


class AgentDefinitionUpdate(BaseModel):
    """Partial update of an agent definition."""

    agent_name: str | None = None
    agent_type: AgentType | None = None
    system_prompt: str | None = None
    tools_enabled: list[str] | None = None
    model_preference: str | None = None
    temperature: float | None = Field(default=None, ge=0, le=2)
    is_active: bool | None = None


class SessionState(BaseModel):
    """Versioned conversation window persisted in a session's ``state``."""

    version: int = SESSION_STATE_VERSION
    messages: list[Message] = Field(default_factory=list)


class AgentSession(BaseModel):
    """A conversation session (``agent_sessions`` row)."""

    id: str
    user_id: str
    agent_id: str
    conversation_id: str
    state: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utcnow)
    last_active: datetime = Field(default_factory=utcnow)
