"""Process-wide, read-only inventory of agent tools."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from types import MappingProxyType

from .base import AgentTool

logger = logging.getLogger(__name__)


class ToolRegistry:
    """
    Name-indexed collection of tools, built once and never mutated.

    Usage:
        registry = ToolRegistry([*graph_tools(store, cache), *crm_tools(crm)])
        tools = registry.resolve_by_names(["get_person_details", "list_folk_groups"])
    """

    def __init__(self, tools: Iterable[AgentTool]):
        """
        Build the registry.

        Args:
            tools: Tools from every source, in inventory order

        Raises:
            ValueError: If two tools share a name
        """
        indexed: dict[str, AgentTool] = {}
        for tool in tools:
            if tool.name in indexed:
                raise ValueError(f"Duplicate tool name: {tool.name}")
            indexed[tool.name] = tool
        self._tools = MappingProxyType(indexed)
        logger.info(f"Tool registry built with {len(indexed)} tools")

    @property
    def tools(self) -> MappingProxyType:
        return self._tools

    def get(self, name: str) -> AgentTool | None:
        return self._tools.get(name)

    def resolve_by_names(self, names: Iterable[str]) -> list[AgentTool]:
        """Registered tools in the requested order; unknown names are dropped."""
        resolved = []
        for name in names:
            tool = self._tools.get(name)
            if tool is None:
                logger.debug(f"Ignoring unknown tool name: {name}")
                continue
            resolved.append(tool)
        return resolved

    def list_names(self) -> list[str]:
        return list(self._tools)

    def by_source(self) -> dict[str, list[str]]:
        """Tool names grouped by the source that contributed them."""
        grouped: dict[str, list[str]] = {}
        for tool in self._tools.values():
            grouped.setdefault(tool.source, []).append(tool.name)
        return grouped

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)
