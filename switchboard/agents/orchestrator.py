"""Bounded tool-calling reasoning loop.

One request runs as: resolve the acting agent, then alternate model calls
and tool phases until the model answers without tool calls or the iteration
budget is spent, then persist the turn to the session when one is attached.
"""

from __future__ import annotations

import asyncio
import json
import logging

from ..llm.protocols import Backend, Message, MessageRole, StopReason, ToolCall
from ..llm.router import ProviderRouter, select_backend
from ..models import AgentInfo, QueryRequest, QueryResponse, RoutingStrategy, utcnow
from ..tools.base import AgentTool
from .configs import AgentConfiguration
from .resolver import AgentResolver, Resolution
from .session_manager import SessionManager

logger = logging.getLogger(__name__)

MAX_ITERATIONS = 5
NO_RESPONSE = "[No response generated]"
ITERATIONS_EXHAUSTED = (
    "[Max iterations reached — partial results may be available from tool calls]"
)


def model_override_for(
    configuration: AgentConfiguration, backend: Backend
) -> str | None:
    """The preferred model, if its vendor hint does not name another backend."""
    if not configuration.preferred_model:
        return None
    if configuration.model_vendor not in (None, backend.value):
        logger.info(
            f"Ignoring {configuration.model_vendor} model preference "
            f"'{configuration.preferred_model}' on {backend.value}"
        )
        return None
    return configuration.preferred_model


class Orchestrator:
    """
    Runs queries through the ReAct-style loop.

    Usage:
        orchestrator = Orchestrator(router, resolver, session_manager)
        response = await orchestrator.run_query(request)
    """

    def __init__(
        self,
        router: ProviderRouter,
        resolver: AgentResolver,
        session_manager: SessionManager | None = None,
        max_iterations: int = MAX_ITERATIONS,
        tool_timeout: float | None = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            router: Provider router used for every model call
            resolver: Resolves requests to agent configurations
            session_manager: Persists turns of session-backed requests
            max_iterations: Maximum model calls per request
            tool_timeout: Optional upper bound in seconds for one tool execution
        """
        self.router = router
        self.resolver = resolver
        self.session_manager = session_manager
        self.max_iterations = max_iterations
        self.tool_timeout = tool_timeout

    async def run_query(self, request: QueryRequest) -> QueryResponse:
        """
        Answer a query.

        Raises:
            ProviderError: If a model call fails
        """
        resolution = await self.resolver.resolve(request)
        configuration = resolution.configuration
        sensitivity = request.user_context.data_sensitivity
        backend = select_backend(sensitivity)
        model_override = model_override_for(configuration, backend)

        tools_by_name = {tool.name: tool for tool in configuration.tools}
        schemas = [tool.schema() for tool in configuration.tools]

        user_message = Message(role=MessageRole.USER, content=request.message)
        transcript: list[Message] = [user_message]
        tools_used: list[str] = []
        answer: str | None = None

        for iteration in range(1, self.max_iterations + 1):
            logger.info(
                f"Iteration {iteration}/{self.max_iterations} "
                f"({resolution.primary_agent}, {backend.value})"
            )
            response = await self.router.complete(
                configuration.system_prompt,
                [*resolution.history, *transcript],
                tools=schemas or None,
                sensitivity=sensitivity,
                model_override=model_override,
                temperature=configuration.temperature,
            )

            if response.stop_reason == StopReason.STOP or not response.tool_calls:
                answer = response.text or NO_RESPONSE
                break

            transcript.append(
                Message(
                    role=MessageRole.ASSISTANT,
                    content=response.text,
                    tool_calls=response.tool_calls,
                )
            )

            results = await asyncio.gather(
                *(self._execute_tool(call, tools_by_name) for call in response.tool_calls)
            )
            for call, (content, succeeded) in zip(response.tool_calls, results):
                transcript.append(
                    Message(role=MessageRole.TOOL, content=content, tool_call_id=call.id)
                )
                if succeeded:
                    tools_used.append(call.name)
        else:
            logger.warning(
                f"Max iterations ({self.max_iterations}) reached for conversation "
                f"{request.conversation_id}"
            )
            last_assistant = next(
                (m for m in reversed(transcript) if m.role == MessageRole.ASSISTANT),
                None,
            )
            answer = (last_assistant.content if last_assistant else "") or ITERATIONS_EXHAUSTED

        await self._persist(resolution, user_message, answer)
        return self._build_response(request, resolution, answer, tools_used)

    async def _execute_tool(
        self, call: ToolCall, tools_by_name: dict[str, AgentTool]
    ) -> tuple[str, bool]:
        """Run one tool call; returns the tool message body and whether it succeeded."""
        tool = tools_by_name.get(call.name)
        if tool is None:
            logger.warning(f"Model requested unknown tool: {call.name}")
            return json.dumps({"error": f"Unknown tool: {call.name}"}), False

        try:
            execution = tool.execute(call.id, call.arguments)
            if self.tool_timeout:
                output = await asyncio.wait_for(execution, timeout=self.tool_timeout)
            else:
                output = await execution
        except asyncio.TimeoutError:
            detail = f"timed out after {self.tool_timeout}s"
        except Exception as e:
            detail = str(e) or type(e).__name__
        else:
            logger.info(f"Tool {call.name} executed ({call.id})")
            return output.text, True

        logger.warning(f"Tool {call.name} failed: {detail}")
        return json.dumps({"error": f"Tool execution failed: {detail}"}), False

    async def _persist(
        self, resolution: Resolution, user_message: Message, answer: str
    ) -> None:
        if resolution.session is None or self.session_manager is None:
            return
        await self.session_manager.try_save(
            resolution.session,
            resolution.history,
            [user_message, Message(role=MessageRole.ASSISTANT, content=answer)],
        )

    def _build_response(
        self,
        request: QueryRequest,
        resolution: Resolution,
        answer: str,
        tools_used: list[str],
    ) -> QueryResponse:
        session_backed = resolution.routing_strategy == RoutingStrategy.USER_AGENT
        return QueryResponse(
            content=answer,
            agent_info=AgentInfo(
                type=resolution.agent_type.value,
                primary_agent=resolution.primary_agent,
                routing_strategy=resolution.routing_strategy.value,
                agents_used=tools_used if (tools_used or session_backed) else None,
            ),
            conversation_id=request.conversation_id,
            timestamp=utcnow().isoformat(),
        )
