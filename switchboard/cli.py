"""Command-line interface for the orchestration engine."""

import asyncio
import json
import uuid
from typing import Annotated

import typer

from .config.loader import available_profiles, load_config
from .config.factory import Services
from .errors import ProviderError
from .models import AgentType, QueryRequest, UserContext, UserRole

app = typer.Typer(
    name="switchboard",
    help="Route questions to OneVice sales, talent and bidding agents.",
    add_completion=False,
)


@app.command()
def query(
    message: Annotated[str, typer.Argument(help="Question to ask")],
    agent_type: Annotated[
        AgentType,
        typer.Option("--agent", "-a", help="Route directly to this agent type"),
    ] = None,
    agent_id: Annotated[
        str,
        typer.Option("--agent-id", help="Use a stored user agent definition"),
    ] = None,
    user_id: Annotated[str, typer.Option("--user", "-u", help="Caller user id")] = "cli",
    role: Annotated[UserRole, typer.Option("--role", help="Caller role")] = UserRole.SALESPERSON,
    sensitivity: Annotated[
        int,
        typer.Option("--sensitivity", min=1, max=6, help="Data sensitivity level (1-6)"),
    ] = 1,
    conversation_id: Annotated[
        str,
        typer.Option("--conversation", "-c", help="Conversation id to continue"),
    ] = None,
    profile: Annotated[str, typer.Option("--profile", "-p", help="Configuration profile")] = None,
    output_format: Annotated[
        str,
        typer.Option("--format", "-f", help="Output format: text or json"),
    ] = "text",
):
    """
    Ask a question and print the agent's answer.

    Examples:

        # Let the classifier pick the agent
        switchboard query "Who directed the Nike spring campaign?"

        # Ask the bidding agent at a confidential level
        switchboard query "Break down the DP costs" -a bidding --sensitivity 5

        # Output as JSON
        switchboard query "Find DPs with a gritty look" --format json
    """
    request = QueryRequest(
        message=message,
        user_context=UserContext(user_id=user_id, role=role, data_sensitivity=sensitivity),
        conversation_id=conversation_id or str(uuid.uuid4()),
        agent_id=agent_id,
        agent_type=agent_type,
    )

    try:
        response = asyncio.run(_query_async(request, profile))
    except ProviderError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    if output_format == "json":
        typer.echo(json.dumps(response.model_dump(exclude_none=True), indent=2))
        return

    info = response.agent_info
    typer.echo(response.content)
    typer.echo()
    typer.echo(f"Agent: {info.primary_agent} ({info.type}, {info.routing_strategy})")
    if info.agents_used:
        typer.echo(f"Tools: {', '.join(info.agents_used)}")
    typer.echo(f"Conversation: {response.conversation_id}")


async def _query_async(request: QueryRequest, profile: str | None):
    """Async implementation of query."""
    async with Services(load_config(profile)) as services:
        return await services.orchestrator.run_query(request)


@app.command()
def tools(
    profile: Annotated[str, typer.Option("--profile", "-p", help="Configuration profile")] = None,
):
    """List the registered tools grouped by source."""
    services = Services(load_config(profile))
    for source, names in services.registry.by_source().items():
        typer.echo(f"{source} ({len(names)}):")
        for name in names:
            tool = services.registry.get(name)
            typer.echo(f"  {name:<36} {tool.label}")
        typer.echo()


@app.command()
def status(
    profile: Annotated[str, typer.Option("--profile", "-p", help="Configuration profile")] = None,
    check: Annotated[bool, typer.Option("--check", help="Round-trip each configured store")] = False,
):
    """Show which collaborators are configured."""
    services = Services(load_config(profile))
    report = services.status()
    if check:
        report["connections"] = asyncio.run(_check_async(services))
    typer.echo(json.dumps(report, indent=2))


async def _check_async(services: Services) -> dict[str, bool]:
    try:
        return await services.check_connections()
    finally:
        await services.close()


@app.command()
def profiles():
    """List available configuration profiles."""
    typer.echo("Available profiles:\n")
    for name in available_profiles():
        config = load_config(name)
        typer.echo(f"  {name}")
        typer.echo(f"    Models: {config.together.backend} / {config.anthropic.backend}")
        typer.echo(f"    Cache: {config.cache.backend}")
        typer.echo(f"    Agent store: {config.agent_store.backend}")
        typer.echo()


@app.command()
def serve(
    host: Annotated[str, typer.Option("--host", help="Bind address")] = None,
    port: Annotated[int, typer.Option("--port", help="Bind port")] = None,
    profile: Annotated[str, typer.Option("--profile", "-p", help="Configuration profile")] = None,
    reload: Annotated[bool, typer.Option("--reload", help="Reload on code changes")] = False,
):
    """Run the HTTP API."""
    import uvicorn

    from .api import create_app

    config = load_config(profile)
    if reload:
        uvicorn.run(
            "switchboard.api.app:create_app",
            factory=True,
            host=host or config.api.host,
            port=port or config.api.port,
            reload=True,
        )
    else:
        uvicorn.run(
            create_app(profile=config),
            host=host or config.api.host,
            port=port or config.api.port,
        )


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
