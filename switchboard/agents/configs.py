"""Built-in agent configurations and model-preference parsing."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from ..models import AgentType
from ..tools.base import AgentTool
from ..tools.registry import ToolRegistry

_VENDOR_PREFIX = re.compile(r"^(together|anthropic)/")


@dataclass(frozen=True)
class BuiltinAgent:
    """Static description of a built-in agent; tools are named, not bound."""

    agent_type: AgentType
    system_prompt: str
    tool_names: tuple[str, ...]


@dataclass(frozen=True)
class AgentConfiguration:
    """Everything the reasoning loop needs to act as one agent.

    Built fresh for every request so edits to stored definitions take
    effect on the next query.
    """

    agent_type: AgentType
    system_prompt: str
    tools: tuple[AgentTool, ...] = field(default_factory=tuple)
    preferred_model: str | None = None
    model_vendor: str | None = None
    temperature: float = 0.7

    @property
    def tool_names(self) -> list[str]:
        return [tool.name for tool in self.tools]

    def to_dict(self) -> dict[str, Any]:
        return {
            "agent_type": self.agent_type.value,
            "system_prompt": self.system_prompt,
            "tools": self.tool_names,
            "preferred_model": self.preferred_model,
            "model_vendor": self.model_vendor,
            "temperature": self.temperature,
        }


SALES_PROMPT = """You are the OneVice Sales Intelligence Agent, an AI assistant for the entertainment industry.

Your capabilities:
- Look up people, organizations, and their relationships in the knowledge graph
- Search Folk CRM for live contact data
- Find collaborators and network connections
- Search across the entire knowledge base

When answering:
- Be concise and actionable
- Include specific names, roles, and relationships
- Suggest next steps when appropriate
- If data is not found, suggest alternative search approaches"""

TALENT_PROMPT = """You are the OneVice Talent Acquisition Agent, an AI assistant for finding and evaluating entertainment industry talent.

Your capabilities:
- Search for people by skills, roles, and experience
- Find collaborators and past working relationships
- Look up project details and crew compositions
- Find similar projects for pattern matching
- Check crew collaboration history

When answering:
- Focus on relevant experience and skills
- Highlight collaboration history between crew members
- Suggest talent based on project requirements
- Note any potential scheduling or availability concerns"""

BIDDING_PROMPT = """You are the OneVice Bidding Intelligence Agent, an AI assistant for analyzing bids, budgets, and production costs.

Your capabilities:
- Validate talent rates against profiles
- Get financial breakdowns for crew positions
- Analyze director-brand fit for campaigns
- Find DPs by visual aesthetic requirements
- Check crew collaboration history
- Identify executive producers for projects
- Analyze company hub status in the network

When answering:
- Provide specific numbers and rates
- Flag mismatches between bid rates and profile rates
- Suggest cost optimizations when appropriate
- Reference relevant past projects for comparison"""

DEFAULT_CUSTOM_PROMPT = """You are a custom OneVice AI assistant for the entertainment industry.
Use the tools available to you to answer questions accurately and concisely.
If data is not found, suggest alternative approaches."""


SALES_AGENT = BuiltinAgent(
    agent_type=AgentType.SALES,
    system_prompt=SALES_PROMPT,
    tool_names=(
        "get_person_details",
        "get_organization_profile",
        "find_collaborators",
        "broad_vector_search",
        "search_folk_contacts",
        "get_folk_contact_details",
        "list_folk_groups",
    ),
)

TALENT_AGENT = BuiltinAgent(
    agent_type=AgentType.TALENT,
    system_prompt=TALENT_PROMPT,
    tool_names=(
        "get_person_details",
        "find_collaborators",
        "get_project_details",
        "find_similar_projects",
        "broad_vector_search",
        "check_crew_collaboration",
        "find_dp_by_aesthetic",
        "get_director_brand_fit",
    ),
)

BIDDING_AGENT = BuiltinAgent(
    agent_type=AgentType.BIDDING,
    system_prompt=BIDDING_PROMPT,
    tool_names=(
        "validate_line_producer_rate",
        "get_dp_financial_breakdown",
        "get_director_brand_fit",
        "find_dp_by_aesthetic",
        "check_crew_collaboration",
        "get_executive_producer_for_project",
        "analyze_hub_node_status",
        "get_project_details",
        "get_person_details",
        "broad_vector_search",
    ),
)

BUILTIN_AGENTS: dict[AgentType, BuiltinAgent] = {
    AgentType.SALES: SALES_AGENT,
    AgentType.TALENT: TALENT_AGENT,
    AgentType.BIDDING: BIDDING_AGENT,
}


def get_builtin_agent(agent_type: AgentType) -> BuiltinAgent:
    """Built-in agent for a type; custom or unknown types get the sales agent."""
    return BUILTIN_AGENTS.get(agent_type, SALES_AGENT)


def builtin_configuration(
    agent_type: AgentType, registry: ToolRegistry
) -> AgentConfiguration:
    """Bind a built-in agent's tool names through the registry."""
    agent = get_builtin_agent(agent_type)
    return AgentConfiguration(
        agent_type=agent_type,
        system_prompt=agent.system_prompt,
        tools=tuple(registry.resolve_by_names(agent.tool_names)),
    )


def strip_model_prefix(model_preference: str | None) -> tuple[str | None, str | None]:
    """
    Split a stored model preference into (vendor hint, model id).

    ``"together/meta-llama/Llama-3.3-70B-Instruct-Turbo"`` gives
    ``("together", "meta-llama/Llama-3.3-70B-Instruct-Turbo")``. Only the
    ``together/`` and ``anthropic/`` prefixes are recognized; anything else is
    returned as the model id with no vendor. An empty model id becomes None.
    """
    if not model_preference:
        return None, None
    match = _VENDOR_PREFIX.match(model_preference)
    if match is None:
        return None, model_preference
    model = model_preference[match.end():]
    return match.group(1), model or None
