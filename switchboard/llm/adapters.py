"""Adapter implementations for the two chat-completion backends."""

import json
import logging
from typing import Any

import anthropic
import openai
from openai import AsyncOpenAI

from ..errors import ConfigurationError, ProviderError
from ..settings import (
    ANTHROPIC_API_KEY,
    ANTHROPIC_DEFAULT_MODEL,
    TOGETHER_API_KEY,
    TOGETHER_BASE_URL,
    TOGETHER_DEFAULT_MODEL,
)
from .protocols import (
    Backend,
    Message,
    MessageRole,
    ProviderResponse,
    StopReason,
    ToolCall,
    ToolSchema,
    Usage,
)

logger = logging.getLogger(__name__)

OPENAI_STOP_REASONS = {
    "stop": StopReason.STOP,
    "tool_calls": StopReason.TOOL_CALLS,
    "length": StopReason.LENGTH,
}

ANTHROPIC_STOP_REASONS = {
    "end_turn": StopReason.STOP,
    "stop_sequence": StopReason.STOP,
    "tool_use": StopReason.TOOL_CALLS,
    "max_tokens": StopReason.LENGTH,
}


def _parse_arguments(raw: str | None) -> dict[str, Any]:
    """Decode a JSON-string argument payload into a dict."""
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning(f"Dropping undecodable tool arguments: {raw[:200]}")
        return {}
    return parsed if isinstance(parsed, dict) else {"value": parsed}


# -----------------------------------------------------------------------------
# OpenAI wire format (Together.ai)
# -----------------------------------------------------------------------------


def format_openai_messages(
    messages: list[Message],
    system_prompt: str | None = None,
) -> list[dict]:
    """Map canonical messages to OpenAI chat-completions messages."""
    formatted: list[dict] = []

    if system_prompt:
        formatted.append({"role": "system", "content": system_prompt})

    for msg in messages:
        entry: dict[str, Any] = {"role": msg.role.value, "content": msg.content}
        if msg.role == MessageRole.ASSISTANT and msg.tool_calls:
            entry["tool_calls"] = [
                {
                    "id": tc.id,
                    "type": "function",
                    "function": {
                        "name": tc.name,
                        "arguments": json.dumps(tc.arguments),
                    },
                }
                for tc in msg.tool_calls
            ]
        elif msg.role == MessageRole.TOOL:
            entry["tool_call_id"] = msg.tool_call_id
        formatted.append(entry)

    return formatted


def format_openai_tools(tools: list[ToolSchema]) -> list[dict]:
    """Map tool schemas to OpenAI function-calling definitions."""
    return [
        {
            "type": "function",
            "function": {
                "name": tool.name,
                "description": tool.description,
                "parameters": tool.parameters,
            },
        }
        for tool in tools
    ]


def parse_openai_response(response: Any) -> ProviderResponse:
    """Map an OpenAI chat-completions response to the canonical shape."""
    choice = response.choices[0]
    message = choice.message

    tool_calls = [
        ToolCall(
            id=tc.id,
            name=tc.function.name,
            arguments=_parse_arguments(tc.function.arguments),
        )
        for tc in (message.tool_calls or [])
    ]

    usage = None
    if response.usage is not None:
        usage = Usage(
            prompt_tokens=response.usage.prompt_tokens or 0,
            completion_tokens=response.usage.completion_tokens or 0,
        )

    return ProviderResponse(
        text=message.content or "",
        stop_reason=OPENAI_STOP_REASONS.get(choice.finish_reason, StopReason.UNKNOWN),
        tool_calls=tool_calls,
        model=response.model,
        backend=Backend.TOGETHER,
        usage=usage,
    )


# -----------------------------------------------------------------------------
# Anthropic Messages API format
# -----------------------------------------------------------------------------


def format_anthropic_messages(messages: list[Message]) -> list[dict]:
    """Map canonical messages to Anthropic Messages API turns.

    Tool results become ``tool_result`` blocks on a user turn; consecutive
    results share one turn so a parallel tool batch answers a single
    assistant turn. System messages are skipped (they go in ``system``).
    """
    formatted: list[dict] = []

    for msg in messages:
        if msg.role == MessageRole.SYSTEM:
            continue

        if msg.role == MessageRole.TOOL:
            block = {
                "type": "tool_result",
                "tool_use_id": msg.tool_call_id,
                "content": msg.content,
            }
            previous = formatted[-1] if formatted else None
            if (
                previous is not None
                and previous["role"] == "user"
                and isinstance(previous["content"], list)
                and previous["content"][-1].get("type") == "tool_result"
            ):
                previous["content"].append(block)
            else:
                formatted.append({"role": "user", "content": [block]})

        elif msg.role == MessageRole.ASSISTANT and msg.tool_calls:
            content: list[dict] = []
            if msg.content:
                content.append({"type": "text", "text": msg.content})
            for tc in msg.tool_calls:
                content.append({
                    "type": "tool_use",
                    "id": tc.id,
                    "name": tc.name,
                    "input": tc.arguments,
                })
            formatted.append({"role": "assistant", "content": content})

        else:
            formatted.append({"role": msg.role.value, "content": msg.content})

    return formatted


def format_anthropic_tools(tools: list[ToolSchema]) -> list[dict]:
    """Map tool schemas to Anthropic tool definitions."""
    return [
        {
            "name": tool.name,
            "description": tool.description,
            "input_schema": tool.parameters,
        }
        for tool in tools
    ]


def parse_anthropic_response(message: Any) -> ProviderResponse:
    """Map an Anthropic message to the canonical shape."""
    text = ""
    tool_calls: list[ToolCall] = []

    for block in message.content:
        if block.type == "text":
            text += block.text
        elif block.type == "tool_use":
            tool_calls.append(
                ToolCall(id=block.id, name=block.name, arguments=dict(block.input or {}))
            )

    usage = None
    if message.usage is not None:
        usage = Usage(
            prompt_tokens=message.usage.input_tokens,
            completion_tokens=message.usage.output_tokens,
        )

    return ProviderResponse(
        text=text,
        stop_reason=ANTHROPIC_STOP_REASONS.get(message.stop_reason, StopReason.UNKNOWN),
        tool_calls=tool_calls,
        model=message.model,
        backend=Backend.ANTHROPIC,
        usage=usage,
    )


# -----------------------------------------------------------------------------
# Adapters
# -----------------------------------------------------------------------------


class TogetherAdapter:
    """
    Adapter for Together.ai.

    Together exposes an OpenAI-compatible API, so this uses the OpenAI SDK
    pointed at the Together base URL. The SDK's internal retries are turned
    off: a failed call surfaces as ``ProviderError`` immediately.

    Usage:
        async with TogetherAdapter() as llm:
            response = await llm.chat([Message(role=MessageRole.USER, content="Hi")])
    """

    backend = Backend.TOGETHER

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        timeout: float = 120.0,
    ):
        """
        Initialize the Together adapter.

        Args:
            api_key: Optional API key. If not provided, uses TOGETHER_API_KEY env var.
            model: Default model. Defaults to TOGETHER_DEFAULT_MODEL.
            base_url: API base URL. Defaults to TOGETHER_BASE_URL.
            timeout: Per-request timeout in seconds
        """
        self.api_key = api_key or TOGETHER_API_KEY
        self.model = model or TOGETHER_DEFAULT_MODEL
        self.base_url = base_url or TOGETHER_BASE_URL
        self.timeout = timeout
        self._client: AsyncOpenAI | None = None

        logger.info(f"Together adapter initialized with model: {self.model}")

    async def __aenter__(self) -> "TogetherAdapter":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            if not self.api_key:
                raise ConfigurationError(
                    "TOGETHER_API_KEY not configured. Set it in .env"
                )
            self._client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                max_retries=0,
                timeout=self.timeout,
            )
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.close()
            self._client = None

    async def chat(
        self,
        messages: list[Message],
        system_prompt: str | None = None,
        tools: list[ToolSchema] | None = None,
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 4096,
    ) -> ProviderResponse:
        """Run one chat completion against Together."""
        kwargs: dict[str, Any] = {
            "model": model or self.model,
            "messages": format_openai_messages(messages, system_prompt),
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if tools:
            kwargs["tools"] = format_openai_tools(tools)
            kwargs["tool_choice"] = "auto"

        logger.debug(
            f"Together request: model={kwargs['model']}, "
            f"{len(kwargs['messages'])} messages, {len(tools or [])} tools"
        )

        client = self.client
        try:
            response = await client.chat.completions.create(**kwargs)
        except openai.APIStatusError as e:
            raise ProviderError(self.backend.value, e.message, status_code=e.status_code) from e
        except openai.APIError as e:
            raise ProviderError(self.backend.value, str(e)) from e

        result = parse_openai_response(response)
        logger.debug(f"Usage: {result.usage}")
        return result


class AnthropicAdapter:
    """
    Adapter for Anthropic API (direct).

    Uses the Anthropic Python SDK directly for Claude models. Internal SDK
    retries are disabled for the same reason as ``TogetherAdapter``.

    Usage:
        async with AnthropicAdapter() as llm:
            response = await llm.chat([Message(role=MessageRole.USER, content="Hi")])
    """

    backend = Backend.ANTHROPIC

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        timeout: float = 120.0,
    ):
        """
        Initialize the Anthropic adapter.

        Args:
            api_key: Optional API key. If not provided, uses ANTHROPIC_API_KEY env var.
            model: Default model. Defaults to ANTHROPIC_DEFAULT_MODEL.
            timeout: Per-request timeout in seconds
        """
        self.api_key = api_key or ANTHROPIC_API_KEY
        self.model = model or ANTHROPIC_DEFAULT_MODEL
        self.timeout = timeout
        self._client: anthropic.AsyncAnthropic | None = None

        logger.info(f"Anthropic adapter initialized with model: {self.model}")

    async def __aenter__(self) -> "AnthropicAdapter":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    @property
    def client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            if not self.api_key:
                raise ConfigurationError(
                    "ANTHROPIC_API_KEY not configured. Set it in .env"
                )
            self._client = anthropic.AsyncAnthropic(
                api_key=self.api_key,
                max_retries=0,
                timeout=self.timeout,
            )
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.close()
            self._client = None

    async def chat(
        self,
        messages: list[Message],
        system_prompt: str | None = None,
        tools: list[ToolSchema] | None = None,
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 4096,
    ) -> ProviderResponse:
        """Run one chat completion against Anthropic."""
        # System messages inside the transcript are folded into ``system``
        system_parts = [system_prompt] if system_prompt else []
        system_parts.extend(
            msg.content for msg in messages if msg.role == MessageRole.SYSTEM and msg.content
        )

        kwargs: dict[str, Any] = {
            "model": model or self.model,
            "messages": format_anthropic_messages(messages),
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        if system_parts:
            kwargs["system"] = "\n\n".join(system_parts)
        if tools:
            kwargs["tools"] = format_anthropic_tools(tools)

        logger.debug(
            f"Anthropic request: model={kwargs['model']}, "
            f"{len(kwargs['messages'])} messages, {len(tools or [])} tools"
        )

        client = self.client
        try:
            message = await client.messages.create(**kwargs)
        except anthropic.APIStatusError as e:
            raise ProviderError(self.backend.value, e.message, status_code=e.status_code) from e
        except anthropic.APIError as e:
            raise ProviderError(self.backend.value, str(e)) from e

        result = parse_anthropic_response(message)
        logger.debug(f"Usage: {result.usage}")
        return result
