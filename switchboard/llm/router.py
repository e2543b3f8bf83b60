"""Sensitivity-based dispatch between the two model backends."""

import asyncio
import logging

from ..errors import ProviderError
from .protocols import Backend, ChatProvider, Message, ProviderResponse, ToolSchema

logger = logging.getLogger(__name__)

MIN_SENSITIVITY = 1
MAX_SENSITIVITY = 6
HIGH_ASSURANCE_THRESHOLD = 5


def select_backend(sensitivity: int) -> Backend:
    """
    Pick the backend allowed to process data at a sensitivity level.

    Levels 1-4 go to Together, levels 5-6 go to Anthropic. This is the
    only input to backend selection; model preferences never change it.

    Args:
        sensitivity: Data sensitivity level (1-6)

    Returns:
        The backend for that level

    Raises:
        ValueError: If the level is outside 1-6
    """
    if not MIN_SENSITIVITY <= sensitivity <= MAX_SENSITIVITY:
        raise ValueError(
            f"Data sensitivity must be between {MIN_SENSITIVITY} and "
            f"{MAX_SENSITIVITY}, got {sensitivity}"
        )
    if sensitivity >= HIGH_ASSURANCE_THRESHOLD:
        return Backend.ANTHROPIC
    return Backend.TOGETHER


class ProviderRouter:
    """
    Routes chat completions to the backend selected by data sensitivity.

    Usage:
        router = ProviderRouter(together=TogetherAdapter(), anthropic=AnthropicAdapter())
        response = await router.complete(system_prompt, messages, tools, sensitivity=2)
    """

    def __init__(
        self,
        together: ChatProvider,
        anthropic: ChatProvider,
        timeout: float | None = None,
        max_tokens: int = 4096,
    ):
        """
        Initialize the router.

        Args:
            together: Backend for sensitivity levels 1-4
            anthropic: Backend for sensitivity levels 5-6
            timeout: Optional upper bound in seconds for one call
            max_tokens: Maximum tokens to generate per call
        """
        self._providers: dict[Backend, ChatProvider] = {
            Backend.TOGETHER: together,
            Backend.ANTHROPIC: anthropic,
        }
        self.timeout = timeout
        self.max_tokens = max_tokens

    def provider_for(self, sensitivity: int) -> ChatProvider:
        """Get the provider that handles a sensitivity level."""
        return self._providers[select_backend(sensitivity)]

    @property
    def providers(self) -> dict[Backend, ChatProvider]:
        return dict(self._providers)

    async def complete(
        self,
        system_prompt: str | None,
        messages: list[Message],
        tools: list[ToolSchema] | None = None,
        sensitivity: int = 1,
        model_override: str | None = None,
        temperature: float = 0.7,
    ) -> ProviderResponse:
        """
        Run one chat completion on the backend chosen for ``sensitivity``.

        Args:
            system_prompt: System prompt for the agent
            messages: Full conversation so far
            tools: Tool schemas to advertise (omitted when empty)
            sensitivity: Data sensitivity level (1-6)
            model_override: Literal model id to use on the selected backend
            temperature: Sampling temperature

        Returns:
            Canonical provider response

        Raises:
            ProviderError: On any non-success result or timeout (not retried)
        """
        backend = select_backend(sensitivity)
        provider = self._providers[backend]

        logger.info(
            f"Routing to {backend.value} (sensitivity={sensitivity}, "
            f"model={model_override or 'default'}, {len(messages)} messages)"
        )

        call = provider.chat(
            messages,
            system_prompt=system_prompt,
            tools=tools or None,
            model=model_override,
            temperature=temperature,
            max_tokens=self.max_tokens,
        )
        try:
            if self.timeout:
                response = await asyncio.wait_for(call, timeout=self.timeout)
            else:
                response = await call
        except asyncio.TimeoutError as e:
            raise ProviderError(
                backend.value, f"no response within {self.timeout}s"
            ) from e

        logger.info(
            f"{backend.value} responded: stop_reason={response.stop_reason.value}, "
            f"{len(response.tool_calls)} tool calls, model={response.model}"
        )
        return response
