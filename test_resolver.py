"""Tests for agent resolution and configuration building."""

import asyncio
import json

from switchboard.agents import (
    DEFAULT_CUSTOM_PROMPT,
    AgentResolver,
    SessionManager,
    builtin_configuration,
    get_builtin_agent,
    strip_model_prefix,
)
from switchboard.errors import StoreError
from switchboard.models import (
    AgentDefinition,
    AgentType,
    QueryRequest,
    RoutingStrategy,
    UserContext,
)
from switchboard.storage import MemoryAgentStore
from switchboard.tools import ToolRegistry, bid_tools, crm_tools, graph_tools

from test_tools import FakeCrm, FakeGraphStore


def build_registry() -> ToolRegistry:
    store = FakeGraphStore()
    return ToolRegistry([*graph_tools(store), *bid_tools(store), *crm_tools(FakeCrm())])


def request(message: str, **kwargs) -> QueryRequest:
    return QueryRequest(
        message=message,
        user_context=UserContext(user_id="user_1"),
        conversation_id="conv_1",
        **kwargs,
    )


def store_with(definition: AgentDefinition) -> MemoryAgentStore:
    store = MemoryAgentStore()
    store.agents[definition.id] = definition
    return store


def definition(**overrides) -> AgentDefinition:
    fields = {
        "id": "agent_1",
        "user_id": "user_1",
        "agent_name": "Bid Desk",
        "agent_type": AgentType.BIDDING,
    }
    fields.update(overrides)
    return AgentDefinition(**fields)


class FailingStore(MemoryAgentStore):
    async def get_agent(self, agent_id):
        raise StoreError("supabase unavailable")


# -----------------------------------------------------------------------------
# Built-in configurations
# -----------------------------------------------------------------------------


def test_builtin_tool_counts():
    registry = build_registry()
    assert len(builtin_configuration(AgentType.SALES, registry).tools) == 7
    assert len(builtin_configuration(AgentType.TALENT, registry).tools) == 8
    assert len(builtin_configuration(AgentType.BIDDING, registry).tools) == 10


def test_builtin_configuration_is_stable():
    registry = build_registry()
    first = builtin_configuration(AgentType.TALENT, registry)
    second = builtin_configuration(AgentType.TALENT, registry)
    assert first == second
    assert first.tool_names == list(get_builtin_agent(AgentType.TALENT).tool_names)


def test_custom_type_uses_sales_configuration():
    registry = build_registry()
    config = builtin_configuration(AgentType.CUSTOM, registry)
    assert config.agent_type == AgentType.CUSTOM
    assert config.tool_names == builtin_configuration(AgentType.SALES, registry).tool_names


def test_strip_model_prefix():
    assert strip_model_prefix("together/meta-llama/Llama-3.3-70B-Instruct-Turbo") == (
        "together",
        "meta-llama/Llama-3.3-70B-Instruct-Turbo",
    )
    assert strip_model_prefix("anthropic/claude-sonnet-4-6") == ("anthropic", "claude-sonnet-4-6")
    assert strip_model_prefix("gpt-4o") == (None, "gpt-4o")
    assert strip_model_prefix(None) == (None, None)
    assert strip_model_prefix("together/") == ("together", None)


# -----------------------------------------------------------------------------
# Resolution precedence
# -----------------------------------------------------------------------------


def test_auto_classified():
    resolver = AgentResolver(build_registry())
    resolution = asyncio.run(resolver.resolve(request("What's the budget for this bid?")))

    assert resolution.agent_type == AgentType.BIDDING
    assert resolution.routing_strategy == RoutingStrategy.AUTO_CLASSIFIED
    assert resolution.primary_agent == "bidding_intelligence"
    assert resolution.session is None


def test_direct_type_beats_classification():
    resolver = AgentResolver(build_registry())
    resolution = asyncio.run(
        resolver.resolve(request("What's the budget for this bid?", agent_type=AgentType.TALENT))
    )
    assert resolution.agent_type == AgentType.TALENT
    assert resolution.routing_strategy == RoutingStrategy.DIRECT


def test_user_agent_beats_type():
    store = store_with(definition(tools_enabled=["get_dp_financial_breakdown", "not_a_tool"]))
    resolver = AgentResolver(build_registry(), store, SessionManager(store))

    resolution = asyncio.run(
        resolver.resolve(request("hello", agent_id="agent_1", agent_type=AgentType.SALES))
    )

    assert resolution.routing_strategy == RoutingStrategy.USER_AGENT
    assert resolution.primary_agent == "Bid Desk"
    assert resolution.agent_type == AgentType.BIDDING
    assert resolution.configuration.tool_names == ["get_dp_financial_breakdown"]
    assert resolution.session is not None
    assert resolution.history == []


def test_inactive_agent_falls_back():
    store = store_with(definition(is_active=False))
    resolver = AgentResolver(build_registry(), store)

    resolution = asyncio.run(resolver.resolve(request("find a director", agent_id="agent_1")))

    assert resolution.routing_strategy == RoutingStrategy.FALLBACK_CLASSIFIED
    assert resolution.agent_type == AgentType.TALENT
    assert resolution.session is None


def test_missing_agent_uses_requested_type():
    resolver = AgentResolver(build_registry(), MemoryAgentStore())
    resolution = asyncio.run(
        resolver.resolve(request("hi", agent_id="ghost", agent_type=AgentType.BIDDING))
    )
    assert resolution.routing_strategy == RoutingStrategy.FALLBACK_CLASSIFIED
    assert resolution.agent_type == AgentType.BIDDING


def test_store_failure_falls_back():
    resolver = AgentResolver(build_registry(), FailingStore())
    resolution = asyncio.run(resolver.resolve(request("hi", agent_id="agent_1")))
    assert resolution.routing_strategy == RoutingStrategy.FALLBACK_CLASSIFIED
    assert resolution.agent_type == AgentType.SALES


# -----------------------------------------------------------------------------
# Stored definitions
# -----------------------------------------------------------------------------


def test_custom_agent_defaults():
    resolver = AgentResolver(build_registry())
    config = resolver.configuration_from_definition(
        definition(agent_type=AgentType.CUSTOM, model_preference="anthropic/claude-sonnet-4-6")
    )

    assert config.system_prompt == DEFAULT_CUSTOM_PROMPT
    assert len(config.tools) == 16
    assert config.model_vendor == "anthropic"
    assert config.preferred_model == "claude-sonnet-4-6"


def test_custom_agent_prompt_and_tools():
    resolver = AgentResolver(build_registry())
    config = resolver.configuration_from_definition(
        definition(
            agent_type=AgentType.CUSTOM,
            system_prompt="You only talk about groups.",
            tools_enabled=["list_folk_groups"],
            temperature=0.2,
        )
    )
    assert config.system_prompt == "You only talk about groups."
    assert config.tool_names == ["list_folk_groups"]
    assert config.temperature == 0.2


def test_standard_agent_keeps_builtin_prompt():
    registry = build_registry()
    resolver = AgentResolver(registry)
    config = resolver.configuration_from_definition(definition())

    builtin = builtin_configuration(AgentType.BIDDING, registry)
    assert config.system_prompt == builtin.system_prompt
    assert config.tool_names == builtin.tool_names


def test_resolution_is_repeatable():
    store = store_with(definition())
    resolver = AgentResolver(build_registry(), store)

    async def scenario():
        return (
            await resolver.resolve(request("hi", agent_id="agent_1")),
            await resolver.resolve(request("hi", agent_id="agent_1")),
        )

    first, second = asyncio.run(scenario())
    first_bytes = json.dumps(first.configuration.to_dict(), sort_keys=True)
    second_bytes = json.dumps(second.configuration.to_dict(), sort_keys=True)
    assert first_bytes == second_bytes
    assert [t.schema().model_dump() for t in first.configuration.tools] == [
        t.schema().model_dump() for t in second.configuration.tools
    ]


if __name__ == "__main__":
    import pytest

    raise SystemExit(pytest.main([__file__, "-v"]))
