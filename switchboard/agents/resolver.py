"""Chooses the agent configuration that acts on a request."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ..llm.protocols import Message
from ..models import AgentDefinition, AgentType, QueryRequest, RoutingStrategy
from ..storage.protocols import AgentDefinitionStore
from ..tools.registry import ToolRegistry
from .classifier import classify_query
from .configs import (
    DEFAULT_CUSTOM_PROMPT,
    AgentConfiguration,
    builtin_configuration,
    strip_model_prefix,
)
from .session_manager import SessionHandle, SessionManager

logger = logging.getLogger(__name__)


@dataclass
class Resolution:
    """The configuration chosen for a request and how it was chosen.

    Attributes:
        configuration: Prompt, tools and model settings for the loop
        agent_type: Agent type reported in the response
        routing_strategy: How the configuration was chosen
        primary_agent: Label reported as the acting agent
        session: Session to persist the turn into, if one is attached
        history: Prior messages of that session, oldest first
    """

    configuration: AgentConfiguration
    agent_type: AgentType
    routing_strategy: RoutingStrategy
    primary_agent: str
    session: SessionHandle | None = None
    history: list[Message] = field(default_factory=list)


def primary_agent_label(agent_type: AgentType) -> str:
    return f"{agent_type.value}_intelligence"


class AgentResolver:
    """
    Resolves a request to an ``AgentConfiguration``.

    Precedence: a stored, active user agent named by ``agent_id``; then an
    explicit ``agent_type``; then keyword classification. A stored agent that
    cannot be loaded falls back to the type or classification path.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        agent_store: AgentDefinitionStore | None = None,
        session_manager: SessionManager | None = None,
    ):
        self.registry = registry
        self.agent_store = agent_store
        self.session_manager = session_manager

    def configuration_from_definition(
        self, definition: AgentDefinition
    ) -> AgentConfiguration:
        """
        Build a configuration from a stored definition.

        Custom agents use their own prompt (or the default custom prompt) and
        their enabled tools, or every registered tool when none are enabled.
        Standard types start from the built-in configuration and override
        only the prompt and tool subset the definition sets.
        """
        vendor, model = strip_model_prefix(definition.model_preference)

        if definition.agent_type == AgentType.CUSTOM:
            names = definition.tools_enabled or self.registry.list_names()
            tools = tuple(self.registry.resolve_by_names(names))
            prompt = definition.system_prompt or DEFAULT_CUSTOM_PROMPT
        else:
            base = builtin_configuration(definition.agent_type, self.registry)
            prompt = definition.system_prompt or base.system_prompt
            if definition.tools_enabled:
                tools = tuple(self.registry.resolve_by_names(definition.tools_enabled))
            else:
                tools = base.tools

        return AgentConfiguration(
            agent_type=definition.agent_type,
            system_prompt=prompt,
            tools=tools,
            preferred_model=model,
            model_vendor=vendor,
            temperature=definition.temperature,
        )

    async def _load_definition(self, agent_id: str) -> AgentDefinition | None:
        if self.agent_store is None:
            logger.warning(f"No agent store configured, cannot load agent {agent_id}")
            return None
        try:
            return await self.agent_store.get_agent(agent_id)
        except Exception as e:
            logger.warning(f"Agent lookup failed for {agent_id}: {e}")
            return None

    async def resolve(self, request: QueryRequest) -> Resolution:
        """Resolve the acting configuration, attaching session history when available."""
        if request.agent_id:
            definition = await self._load_definition(request.agent_id)
            if definition is not None and definition.is_active:
                return await self._resolve_user_agent(request, definition)

            reason = "inactive" if definition is not None else "not found"
            logger.info(f"Agent {request.agent_id} {reason}, falling back to classification")
            return self._resolve_builtin(request, RoutingStrategy.FALLBACK_CLASSIFIED)

        if request.agent_type is not None:
            return self._resolve_builtin(request, RoutingStrategy.DIRECT)
        return self._resolve_builtin(request, RoutingStrategy.AUTO_CLASSIFIED)

    def _resolve_builtin(
        self, request: QueryRequest, strategy: RoutingStrategy
    ) -> Resolution:
        agent_type = request.agent_type or classify_query(request.message)
        logger.info(f"Routing to {agent_type.value} agent ({strategy.value})")
        return Resolution(
            configuration=builtin_configuration(agent_type, self.registry),
            agent_type=agent_type,
            routing_strategy=strategy,
            primary_agent=primary_agent_label(agent_type),
        )

    async def _resolve_user_agent(
        self, request: QueryRequest, definition: AgentDefinition
    ) -> Resolution:
        configuration = self.configuration_from_definition(definition)

        session, history = None, []
        if self.session_manager is not None:
            outcome = await self.session_manager.try_load(
                request.user_context.user_id, definition.id, request.conversation_id
            )
            if outcome.ok:
                session, history = outcome.value
            else:
                logger.info("Proceeding without session history")

        logger.info(
            f"Routing to user agent '{definition.agent_name}' "
            f"({definition.agent_type.value}, {len(configuration.tools)} tools, "
            f"{len(history)} history messages)"
        )
        return Resolution(
            configuration=configuration,
            agent_type=definition.agent_type,
            routing_strategy=RoutingStrategy.USER_AGENT,
            primary_agent=definition.agent_name,
            session=session,
            history=history,
        )
