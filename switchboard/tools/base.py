"""Uniform tool contract shared by every capability the agents can call."""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar

from ..llm.protocols import ToolSchema

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Result Types
# -----------------------------------------------------------------------------


@dataclass
class TextContent:
    """A text segment of a tool result."""

    text: str
    type: str = "text"


@dataclass
class ToolOutput:
    """Result of a tool execution.

    Attributes:
        content: Ordered text segments returned to the model
        details: Structured payload the text was rendered from, if any
    """

    content: list[TextContent] = field(default_factory=list)
    details: Any = None

    @property
    def text(self) -> str:
        """All text segments joined into one tool message body."""
        return "\n".join(part.text for part in self.content)


def json_result(payload: Any) -> ToolOutput:
    """Render a JSON-serializable payload as a tool result."""
    return ToolOutput(
        content=[TextContent(text=json.dumps(payload, indent=2, default=str))],
        details=payload,
    )


# -----------------------------------------------------------------------------
# Parameter helpers
# -----------------------------------------------------------------------------


def read_str_param(
    params: dict[str, Any], key: str, required: bool = False
) -> str | None:
    """Read a string argument, trimming whitespace.

    Blank strings count as missing.

    Raises:
        ValueError: If ``required`` and the argument is missing
    """
    value = params.get(key)
    if isinstance(value, str):
        value = value.strip()
    elif value is not None and not isinstance(value, (dict, list)):
        value = str(value).strip()
    else:
        value = None

    if not value:
        if required:
            raise ValueError(f"{key} required")
        return None
    return value


def read_number_param(
    params: dict[str, Any], key: str, integer: bool = False
) -> float | int | None:
    """Read a numeric argument, accepting numeric strings."""
    value = params.get(key)
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if not isinstance(value, (int, float)):
        return None
    return int(value) if integer else value


def read_str_list_param(params: dict[str, Any], key: str) -> list[str] | None:
    """Read a list-of-strings argument; a bare string becomes a one-item list."""
    value = params.get(key)
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return None
    items = [str(item).strip() for item in value if str(item).strip()]
    return items or None


def object_schema(
    properties: dict[str, dict[str, Any]], required: list[str] | None = None
) -> dict[str, Any]:
    """Build the JSON schema of a tool's argument object."""
    return {
        "type": "object",
        "properties": properties,
        "required": required or [],
    }


# -----------------------------------------------------------------------------
# Tool interface
# -----------------------------------------------------------------------------


class AgentTool(ABC):
    """Base class for a capability exposed to the reasoning loop.

    Subclasses set the class attributes and implement ``execute``. A tool owns
    its business logic and turns its own query failures into structured
    payloads; anything that still escapes is caught by the orchestrator.
    """

    name: ClassVar[str]
    label: ClassVar[str]
    description: ClassVar[str]
    parameters: ClassVar[dict[str, Any]]
    source: ClassVar[str] = "core"

    @abstractmethod
    async def execute(self, call_id: str, args: dict[str, Any]) -> ToolOutput:
        """
        Run the tool.

        Args:
            call_id: Id of the tool call being answered
            args: Decoded arguments supplied by the model

        Returns:
            The tool result
        """

    def schema(self) -> ToolSchema:
        """Provider-neutral schema advertised to the model."""
        return ToolSchema(
            name=self.name,
            description=self.description,
            parameters=self.parameters,
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
