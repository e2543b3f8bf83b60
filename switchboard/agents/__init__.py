"""Agent routing, session history and the reasoning loop."""

from .classifier import classify_query, score_query
from .configs import (
    DEFAULT_CUSTOM_PROMPT,
    AgentConfiguration,
    BuiltinAgent,
    builtin_configuration,
    get_builtin_agent,
    strip_model_prefix,
)
from .session_manager import Outcome, SessionHandle, SessionManager
from .resolver import AgentResolver, Resolution
from .orchestrator import Orchestrator

__all__ = [
    # Classification
    "classify_query",
    "score_query",
    # Configurations
    "DEFAULT_CUSTOM_PROMPT",
    "AgentConfiguration",
    "BuiltinAgent",
    "builtin_configuration",
    "get_builtin_agent",
    "strip_model_prefix",
    # Sessions
    "Outcome",
    "SessionHandle",
    "SessionManager",
    # Resolution and loop
    "AgentResolver",
    "Orchestrator",
    "Resolution",
]
