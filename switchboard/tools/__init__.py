"""Tools the agents can call, and the registry that indexes them."""

from .base import (
    AgentTool,
    TextContent,
    ToolOutput,
    json_result,
    object_schema,
    read_number_param,
    read_str_list_param,
    read_str_param,
)
from .registry import ToolRegistry
from .graph_tools import graph_tools
from .bid_tools import bid_tools
from .crm_tools import crm_tools

__all__ = [
    # Contract
    "AgentTool",
    "TextContent",
    "ToolOutput",
    "json_result",
    "object_schema",
    "read_number_param",
    "read_str_list_param",
    "read_str_param",
    # Registry
    "ToolRegistry",
    # Tool sources
    "bid_tools",
    "crm_tools",
    "graph_tools",
]
