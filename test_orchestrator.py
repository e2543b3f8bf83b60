"""Tests for the bounded reasoning loop."""

import asyncio
import json

import pytest

from switchboard.agents import AgentResolver, Orchestrator, SessionManager
from switchboard.agents.orchestrator import ITERATIONS_EXHAUSTED, model_override_for
from switchboard.agents.configs import AgentConfiguration
from switchboard.errors import ProviderError
from switchboard.llm import (
    Backend,
    MessageRole,
    ProviderResponse,
    ProviderRouter,
    StopReason,
    ToolCall,
)
from switchboard.models import AgentDefinition, AgentType, QueryRequest, UserContext
from switchboard.storage import MemoryAgentStore
from switchboard.tools import ToolRegistry, bid_tools, crm_tools, graph_tools

from test_tools import FakeCrm, FakeGraphStore

DP_ROWS = [
    {"Talent": "Alex Rivera", "Representation": "WME", "Budget_Phase": "Shoot",
     "Line_Total": 12000, "Skills": ["Grain"]},
]


class ScriptedProvider:
    """Backend replaying a list of responses, then answering plainly."""

    def __init__(self, backend: Backend, script=None, always_tools=False):
        self.backend = backend
        self.script = list(script or [])
        self.always_tools = always_tools
        self.calls = []

    async def chat(self, messages, system_prompt=None, tools=None, model=None,
                   temperature=0.7, max_tokens=4096):
        self.calls.append({"messages": list(messages), "system_prompt": system_prompt,
                           "tools": tools, "model": model, "temperature": temperature})
        if self.always_tools:
            n = len(self.calls)
            return tool_response(self.backend, ToolCall(id=f"call_{n}", name="list_folk_groups"))
        if self.script:
            return self.script.pop(0)
        return ProviderResponse(text="Final answer.", stop_reason=StopReason.STOP,
                                model="scripted", backend=self.backend)


class FailingProvider:
    backend = Backend.ANTHROPIC

    async def chat(self, *args, **kwargs):
        raise ProviderError("anthropic", "overloaded", status_code=529)


def tool_response(backend: Backend, *calls: ToolCall, text: str = "") -> ProviderResponse:
    return ProviderResponse(text=text, stop_reason=StopReason.TOOL_CALLS,
                            tool_calls=list(calls), model="scripted", backend=backend)


def build(together=None, anthropic=None, agent_store=None, graph=None):
    graph = graph or FakeGraphStore({"Director Of Photography": DP_ROWS})
    registry = ToolRegistry([*graph_tools(graph), *bid_tools(graph), *crm_tools(FakeCrm())])
    together = together or ScriptedProvider(Backend.TOGETHER)
    anthropic = anthropic or ScriptedProvider(Backend.ANTHROPIC)
    router = ProviderRouter(together=together, anthropic=anthropic)
    sessions = SessionManager(agent_store) if agent_store else None
    resolver = AgentResolver(registry, agent_store, sessions)
    return Orchestrator(router, resolver, sessions, tool_timeout=5)


def request(message: str, sensitivity: int = 2, **kwargs) -> QueryRequest:
    return QueryRequest(
        message=message,
        user_context=UserContext(user_id="user_1", data_sensitivity=sensitivity),
        conversation_id="conv_1",
        **kwargs,
    )


def test_plain_answer_single_call():
    together = ScriptedProvider(Backend.TOGETHER)
    orchestrator = build(together=together)

    response = asyncio.run(orchestrator.run_query(request("Who runs sales at Acme?")))

    assert response.content == "Final answer."
    assert response.agent_info.type == "sales"
    assert response.agent_info.routing_strategy == "auto_classified"
    assert response.agent_info.agents_used is None
    assert len(together.calls) == 1
    assert together.calls[0]["system_prompt"].startswith("You are the OneVice Sales")


def test_bidding_query_runs_financial_tool():
    together = ScriptedProvider(Backend.TOGETHER, script=[
        tool_response(Backend.TOGETHER, ToolCall(id="call_1", name="get_dp_financial_breakdown",
                                                 arguments={"bid_id": "bid_mj_v1_2025"})),
    ])
    anthropic = ScriptedProvider(Backend.ANTHROPIC)
    orchestrator = build(together=together, anthropic=anthropic)

    response = asyncio.run(
        orchestrator.run_query(request("What is the rate for the DP on bid X?", sensitivity=2))
    )

    assert response.agent_info.type == "bidding"
    assert response.agent_info.routing_strategy == "auto_classified"
    assert response.agent_info.primary_agent == "bidding_intelligence"
    assert "get_dp_financial_breakdown" in response.agent_info.agents_used
    assert len(together.calls) == 2
    assert anthropic.calls == []

    second_call = together.calls[1]["messages"]
    tool_message = second_call[-1]
    assert tool_message.role == MessageRole.TOOL
    assert tool_message.tool_call_id == "call_1"
    assert json.loads(tool_message.content)["total"] == 12000


def test_high_sensitivity_goes_to_anthropic():
    together = ScriptedProvider(Backend.TOGETHER)
    anthropic = ScriptedProvider(Backend.ANTHROPIC)
    orchestrator = build(together=together, anthropic=anthropic)

    asyncio.run(orchestrator.run_query(request("Budget for the bid?", sensitivity=5)))

    assert len(anthropic.calls) == 1
    assert together.calls == []


def test_iteration_cap():
    together = ScriptedProvider(Backend.TOGETHER, always_tools=True)
    orchestrator = build(together=together)

    response = asyncio.run(orchestrator.run_query(request("List my CRM groups")))

    assert len(together.calls) == 5
    assert response.content == ITERATIONS_EXHAUSTED
    assert response.agent_info.agents_used == ["list_folk_groups"] * 5


def test_iteration_cap_returns_last_assistant_text():
    script = [
        tool_response(Backend.TOGETHER, ToolCall(id=f"c{i}", name="list_folk_groups"),
                      text=f"thinking {i}")
        for i in range(5)
    ]
    together = ScriptedProvider(Backend.TOGETHER, script=script)
    orchestrator = build(together=together)

    response = asyncio.run(orchestrator.run_query(request("List my CRM groups")))

    assert response.content == "thinking 4"


def test_failing_and_unknown_tools_do_not_abort_batch():
    class ExplodingGraph(FakeGraphStore):
        async def read(self, query, params=None):
            raise RuntimeError("driver crashed")

    together = ScriptedProvider(Backend.TOGETHER, script=[
        tool_response(
            Backend.TOGETHER,
            ToolCall(id="a", name="get_person_details", arguments={"name": "Jane"}),
            ToolCall(id="b", name="list_folk_groups"),
            ToolCall(id="c", name="launch_rockets"),
        ),
    ])
    orchestrator = build(together=together, graph=ExplodingGraph())

    response = asyncio.run(orchestrator.run_query(request("Contact details for Jane at Acme")))

    assert response.agent_info.agents_used == ["list_folk_groups"]
    tool_messages = [m for m in together.calls[1]["messages"] if m.role == MessageRole.TOOL]
    assert [m.tool_call_id for m in tool_messages] == ["a", "b", "c"]
    assert json.loads(tool_messages[0].content)["error"] == "Tool execution failed: driver crashed"
    assert json.loads(tool_messages[2].content)["error"] == "Unknown tool: launch_rockets"


def test_tool_outside_agent_set_is_unknown():
    together = ScriptedProvider(Backend.TOGETHER, script=[
        tool_response(Backend.TOGETHER, ToolCall(id="x", name="validate_line_producer_rate")),
    ])
    orchestrator = build(together=together)

    response = asyncio.run(orchestrator.run_query(request("hello", agent_type=AgentType.SALES)))

    assert response.agent_info.agents_used is None
    tool_message = together.calls[1]["messages"][-1]
    assert "Unknown tool" in tool_message.content


def test_provider_failure_propagates():
    orchestrator = build(anthropic=FailingProvider())
    with pytest.raises(ProviderError):
        asyncio.run(orchestrator.run_query(request("hi", sensitivity=6)))


def test_user_agent_persists_history():
    store = MemoryAgentStore()
    store.agents["agent_1"] = AgentDefinition(
        id="agent_1", user_id="user_1", agent_name="Deal Desk", agent_type=AgentType.SALES,
        model_preference="together/meta-llama/Llama-3.1-8B-Instruct-Turbo",
    )
    together = ScriptedProvider(Backend.TOGETHER)
    orchestrator = build(together=together, agent_store=store)

    async def scenario():
        first = await orchestrator.run_query(request("first question", agent_id="agent_1"))
        second = await orchestrator.run_query(request("second question", agent_id="agent_1"))
        return first, second

    first, second = asyncio.run(scenario())

    assert first.agent_info.routing_strategy == "user_agent"
    assert first.agent_info.primary_agent == "Deal Desk"
    assert first.agent_info.agents_used == []
    assert together.calls[0]["model"] == "meta-llama/Llama-3.1-8B-Instruct-Turbo"

    # The second call sees the first turn as history
    contents = [m.content for m in together.calls[1]["messages"]]
    assert contents == ["first question", "Final answer.", "second question"]

    session = store.sessions[("user_1", "agent_1", "conv_1")]
    assert len(session.state["messages"]) == 4


def test_model_override_vendor_mismatch():
    config = AgentConfiguration(agent_type=AgentType.SALES, system_prompt="x",
                                preferred_model="claude-sonnet-4-6", model_vendor="anthropic")
    assert model_override_for(config, Backend.ANTHROPIC) == "claude-sonnet-4-6"
    assert model_override_for(config, Backend.TOGETHER) is None

    bare = AgentConfiguration(agent_type=AgentType.SALES, system_prompt="x",
                              preferred_model="some-model")
    assert model_override_for(bare, Backend.TOGETHER) == "some-model"


if __name__ == "__main__":
    raise SystemExit(pytest.main([__file__, "-v"]))
