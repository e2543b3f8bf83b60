"""HTTP routes for queries, status, agent definitions and sessions."""

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from .. import __version__
from ..agents.configs import BUILTIN_AGENTS
from ..config.factory import Services
from ..models import (
    AgentDefinition,
    AgentDefinitionCreate,
    AgentDefinitionUpdate,
    AgentType,
    QueryRequest,
    QueryResponse,
    UserContext,
    utcnow,
)
from .dependencies import get_services, get_user_context, require_service_key

logger = logging.getLogger(__name__)


class QueryBody(BaseModel):
    """Body of a query request; the caller context comes from headers."""

    message: str | None = None
    conversation_id: str | None = None
    agent_id: str | None = None
    agent_type: AgentType | None = None


status_router = APIRouter(tags=["Status"])
query_router = APIRouter(tags=["Query"], dependencies=[Depends(require_service_key)])
agents_router = APIRouter(tags=["Agents"], dependencies=[Depends(require_service_key)])


# -----------------------------------------------------------------------------
# Queries
# -----------------------------------------------------------------------------


async def _run_query(
    body: QueryBody,
    user: UserContext,
    services: Services,
    agent_type: AgentType | None,
) -> QueryResponse:
    if not body.message:
        raise HTTPException(status_code=400, detail="Missing required field: message")

    logger.info(f"Query received from {user.user_id}: {body.message[:80]}")
    request = QueryRequest(
        message=body.message,
        user_context=user,
        conversation_id=body.conversation_id or str(uuid.uuid4()),
        agent_id=body.agent_id,
        agent_type=agent_type,
    )
    return await services.orchestrator.run_query(request)


@query_router.post("/query", response_model=QueryResponse, response_model_exclude_none=True)
async def query(
    body: QueryBody,
    user: UserContext = Depends(get_user_context),
    services: Services = Depends(get_services),
) -> QueryResponse:
    """Route a query to an agent and return its answer."""
    return await _run_query(body, user, services, body.agent_type)


@query_router.post(
    "/agents/{agent_type}/query",
    response_model=QueryResponse,
    response_model_exclude_none=True,
)
async def agent_query(
    agent_type: AgentType,
    body: QueryBody,
    user: UserContext = Depends(get_user_context),
    services: Services = Depends(get_services),
) -> QueryResponse:
    """Query a specific agent type directly."""
    return await _run_query(body, user, services, agent_type)


# -----------------------------------------------------------------------------
# Status
# -----------------------------------------------------------------------------


@status_router.get("/status")
async def status(services: Services = Depends(get_services)) -> dict:
    """Health check with tool inventory and configured credentials."""
    registry = services.registry
    agents = {}
    for agent_type, agent in BUILTIN_AGENTS.items():
        tools = registry.resolve_by_names(agent.tool_names)
        agents[agent_type.value] = {"status": "active", "ready": True, "tools": len(tools)}

    return {
        "status": "healthy",
        "service": "switchboard",
        "version": __version__,
        "agents": agents,
        "tools": {**registry.by_source(), "total": len(registry)},
        "providers": services.status(),
        "timestamp": utcnow().isoformat(),
    }


# -----------------------------------------------------------------------------
# Agent definitions
# -----------------------------------------------------------------------------


def _check_tool_names(names: list[str] | None, services: Services) -> None:
    if not names:
        return
    known = set(services.registry.list_names())
    unknown = [name for name in names if name not in known]
    if unknown:
        raise HTTPException(
            status_code=400, detail=f"Unknown tools: {', '.join(unknown)}"
        )


async def _owned_agent(
    agent_id: str, user: UserContext, services: Services
) -> AgentDefinition:
    agent = await services.agent_store.get_agent(agent_id)
    if agent is None or agent.user_id != user.user_id:
        raise HTTPException(status_code=404, detail=f"Agent not found: {agent_id}")
    return agent


@agents_router.get("/agents", response_model=list[AgentDefinition])
async def list_agents(
    user: UserContext = Depends(get_user_context),
    services: Services = Depends(get_services),
) -> list[AgentDefinition]:
    return await services.agent_store.list_agents(user.user_id)


@agents_router.post("/agents", response_model=AgentDefinition, status_code=201)
async def create_agent(
    body: AgentDefinitionCreate,
    user: UserContext = Depends(get_user_context),
    services: Services = Depends(get_services),
) -> AgentDefinition:
    _check_tool_names(body.tools_enabled, services)
    logger.info(f"Creating agent '{body.agent_name}' for {user.user_id}")
    return await services.agent_store.create_agent(
        user.user_id, body.model_dump(mode="json")
    )


@agents_router.patch("/agents/{agent_id}", response_model=AgentDefinition)
async def update_agent(
    agent_id: str,
    body: AgentDefinitionUpdate,
    user: UserContext = Depends(get_user_context),
    services: Services = Depends(get_services),
) -> AgentDefinition:
    await _owned_agent(agent_id, user, services)
    _check_tool_names(body.tools_enabled, services)
    logger.info(f"Updating agent {agent_id}")
    return await services.agent_store.update_agent(
        agent_id, body.model_dump(mode="json", exclude_unset=True)
    )


@agents_router.delete("/agents/{agent_id}")
async def delete_agent(
    agent_id: str,
    user: UserContext = Depends(get_user_context),
    services: Services = Depends(get_services),
) -> dict:
    """Deactivate an agent; its sessions are kept."""
    await _owned_agent(agent_id, user, services)
    await services.agent_store.deactivate_agent(agent_id)
    logger.info(f"Deactivated agent {agent_id}")
    return {"id": agent_id, "is_active": False, "deactivated_at": utcnow().isoformat()}


# -----------------------------------------------------------------------------
# Sessions
# -----------------------------------------------------------------------------


@agents_router.delete("/sessions/{agent_id}/{conversation_id}")
async def clear_session(
    agent_id: str,
    conversation_id: str,
    user: UserContext = Depends(get_user_context),
    services: Services = Depends(get_services),
) -> dict:
    """Reset a conversation's stored history without creating a session."""
    manager = services.session_manager
    found = await manager.try_find(user.user_id, agent_id, conversation_id)
    cleared = bool(found.ok and found.value) and (await manager.try_clear(found.value)).ok
    return {"agent_id": agent_id, "conversation_id": conversation_id, "cleared": cleared}
