"""Protocol definitions and canonical chat types for model providers."""

from datetime import datetime
from enum import Enum
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, Field


class MessageRole(str, Enum):
    """Role of a message in a conversation."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class ToolCall(BaseModel):
    """A tool invocation requested by the model."""

    id: str
    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)


class Message(BaseModel):
    """A message in a conversation.

    ``tool_calls`` is only set on assistant messages and ``tool_call_id``
    only on tool messages. ``timestamp`` is the capture time stamped when the
    message is persisted to a session window.
    """

    role: MessageRole
    content: str = ""
    tool_calls: list[ToolCall] | None = None
    tool_call_id: str | None = None
    timestamp: datetime | None = None


class ToolSchema(BaseModel):
    """Provider-neutral description of a tool advertised to the model."""

    name: str
    description: str
    parameters: dict[str, Any]


class StopReason(str, Enum):
    """Why the model stopped generating."""

    STOP = "stop"
    TOOL_CALLS = "tool_calls"
    LENGTH = "length"
    UNKNOWN = "unknown"


class Backend(str, Enum):
    """The two model backends the router can dispatch to."""

    TOGETHER = "together"
    ANTHROPIC = "anthropic"


class Usage(BaseModel):
    """Token accounting reported by the provider."""

    prompt_tokens: int
    completion_tokens: int


class ProviderResponse(BaseModel):
    """Canonical response shape shared by every backend."""

    text: str = ""
    stop_reason: StopReason = StopReason.UNKNOWN
    tool_calls: list[ToolCall] = Field(default_factory=list)
    model: str
    backend: Backend
    usage: Usage | None = None


@runtime_checkable
class ChatProvider(Protocol):
    """Protocol for chat-completion backends.

    Implement this protocol to add support for new model APIs. An
    implementation translates canonical messages and tool schemas into its
    wire format and the wire response back into a ``ProviderResponse``.
    """

    backend: Backend

    async def chat(
        self,
        messages: list[Message],
        system_prompt: str | None = None,
        tools: list[ToolSchema] | None = None,
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 4096,
    ) -> ProviderResponse:
        """
        Run one chat completion.

        Args:
            messages: Conversation so far, in order
            system_prompt: Optional system prompt
            tools: Tools the model may call
            model: Model override for this backend
            temperature: Sampling temperature (0-2)
            max_tokens: Maximum tokens to generate

        Returns:
            The canonical provider response

        Raises:
            ProviderError: If the backend returns a non-success result
            ConfigurationError: If the backend has no credentials
        """
        ...
