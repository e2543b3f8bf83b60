"""Configuration loader with Pydantic validation and env var expansion."""

import logging
import os
import re
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, field_validator

from .. import settings

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent / "profiles.yaml"


class ProviderConfig(BaseModel):
    """Configuration for one model backend."""

    backend: Literal["together", "anthropic", "mock"]
    model: str | None = None
    api_key: str | None = None
    base_url: str | None = None
    timeout: float = 120.0


class OrchestratorConfig(BaseModel):
    """Configuration for the reasoning loop."""

    max_iterations: int = settings.MAX_ITERATIONS
    max_tokens: int = 4096
    provider_timeout: float | None = 120.0  # Upper bound for one model call
    tool_timeout: float | None = 30.0  # Upper bound for one tool execution


class SessionConfig(BaseModel):
    """Configuration for conversation history."""

    max_messages: int = settings.MAX_HISTORY_MESSAGES
    timeout: float | None = 10.0


class GraphStoreConfig(BaseModel):
    """Configuration for the Neo4j knowledge graph."""

    uri: str | None = None
    username: str = "neo4j"
    password: str | None = None
    database: str = "neo4j"
    timeout: float = 30.0

    @field_validator("username", "database", mode="before")
    @classmethod
    def default_unset_names(cls, value):
        return value or "neo4j"


class CacheConfig(BaseModel):
    """Configuration for the tool result cache."""

    backend: Literal["redis", "memory", "none"] = "memory"
    url: str | None = None
    key_prefix: str = settings.REDIS_KEY_PREFIX


class AgentStoreConfig(BaseModel):
    """Configuration for stored user agents and sessions."""

    backend: Literal["supabase", "memory"] = "memory"
    url: str | None = None
    key: str | None = None
    timeout: float = 15.0


class CrmConfig(BaseModel):
    """Configuration for the Folk CRM client."""

    api_keys: list[str] = []
    base_url: str = settings.FOLK_BASE_URL
    timeout: float = 15.0

    @field_validator("api_keys", mode="before")
    @classmethod
    def drop_unset_keys(cls, value):
        return [key for key in value or [] if key]


class ApiConfig(BaseModel):
    """Configuration for the HTTP API."""

    host: str = "0.0.0.0"
    port: int = 8000
    service_key: str | None = None


class ProfileConfig(BaseModel):
    """Configuration profile containing every collaborator's config."""

    together: ProviderConfig
    anthropic: ProviderConfig
    orchestrator: OrchestratorConfig = OrchestratorConfig()
    session: SessionConfig = SessionConfig()
    graph: GraphStoreConfig = GraphStoreConfig()
    cache: CacheConfig = CacheConfig()
    agent_store: AgentStoreConfig = AgentStoreConfig()
    crm: CrmConfig = CrmConfig()
    api: ApiConfig = ApiConfig()


_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}")


def expand_env_vars(value: str) -> str | None:
    """Expand ${VAR} references in a string with environment variables.

    References to unset variables are left as-is, except that a value made
    of a single unresolved reference becomes None so it reads as "not set".

    Args:
        value: String potentially containing env var references

    Returns:
        String with env vars expanded, or None
    """
    if not isinstance(value, str):
        return value

    whole = _ENV_PATTERN.fullmatch(value)
    if whole and whole.group(1) not in os.environ:
        return None

    def replacer(match):
        var_name = match.group(1)
        return os.environ.get(var_name, match.group(0))

    return _ENV_PATTERN.sub(replacer, value)


def expand_env_vars_recursive(data):
    """Recursively expand env vars in nested dict/list structures."""
    if isinstance(data, dict):
        return {k: expand_env_vars_recursive(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [expand_env_vars_recursive(item) for item in data]
    elif isinstance(data, str):
        return expand_env_vars(data)
    else:
        return data


def available_profiles(config_path: Path | None = None) -> list[str]:
    """Names of the profiles defined in a config file."""
    config_path = config_path or DEFAULT_CONFIG_PATH
    with open(config_path) as f:
        raw_data = yaml.safe_load(f) or {}
    return list((raw_data.get("profiles") or {}).keys())


def load_config_from_yaml(config_path: Path, profile_name: str) -> ProfileConfig:
    """Load configuration from YAML file.

    Args:
        config_path: Path to config YAML file
        profile_name: Name of profile to load

    Returns:
        ProfileConfig for the requested profile

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValidationError: If config is invalid
        KeyError: If profile doesn't exist
    """
    with open(config_path) as f:
        raw_data = yaml.safe_load(f)

    profiles = (raw_data or {}).get("profiles") or {}
    if profile_name not in profiles:
        available = ", ".join(profiles.keys())
        raise KeyError(
            f"Profile '{profile_name}' not found. Available profiles: {available}"
        )

    # Only the selected profile is expanded and validated
    return ProfileConfig.model_validate(expand_env_vars_recursive(profiles[profile_name]))


def load_config_from_env() -> ProfileConfig:
    """Load configuration from environment variables (fallback mode).

    Returns:
        ProfileConfig constructed from environment variables
    """
    together = ProviderConfig(
        backend="together",
        model=settings.TOGETHER_DEFAULT_MODEL,
        api_key=settings.TOGETHER_API_KEY,
        base_url=settings.TOGETHER_BASE_URL,
    )
    anthropic = ProviderConfig(
        backend="anthropic",
        model=settings.ANTHROPIC_DEFAULT_MODEL,
        api_key=settings.ANTHROPIC_API_KEY,
    )

    graph = GraphStoreConfig(
        uri=settings.NEO4J_URI,
        username=settings.NEO4J_USERNAME,
        password=settings.NEO4J_PASSWORD,
        database=settings.NEO4J_DATABASE,
    )
    cache = CacheConfig(backend="redis", url=settings.REDIS_URL) if settings.REDIS_URL else CacheConfig()
    if settings.SUPABASE_URL and settings.SUPABASE_KEY:
        agent_store = AgentStoreConfig(
            backend="supabase", url=settings.SUPABASE_URL, key=settings.SUPABASE_KEY
        )
    else:
        agent_store = AgentStoreConfig()

    return ProfileConfig(
        together=together,
        anthropic=anthropic,
        graph=graph,
        cache=cache,
        agent_store=agent_store,
        crm=CrmConfig(api_keys=settings.FOLK_API_KEYS),
        api=ApiConfig(service_key=settings.SERVICE_KEY or None),
    )


def load_config(
    profile: str | None = None,
    config_path: Path | None = None,
) -> ProfileConfig:
    """Load configuration from YAML file or environment variables.

    This is the main entry point for loading configuration. It tries to load
    from a YAML config file first, and falls back to environment variables
    if the file doesn't exist or can't be loaded.

    Args:
        profile: Profile name to load. If None, uses SWITCHBOARD_PROFILE env var
                or "dev" as default.
        config_path: Path to config file. If None, uses the profiles.yaml
                    shipped next to this module.

    Returns:
        ProfileConfig with all collaborator configurations
    """
    if profile is None:
        profile = os.environ.get("SWITCHBOARD_PROFILE", "dev")

    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    if config_path.exists():
        try:
            return load_config_from_yaml(config_path, profile)
        except Exception as e:
            logger.warning(f"Failed to load config from {config_path}: {e}")
            logger.warning("Falling back to environment variables")
            return load_config_from_env()
    else:
        logger.info(f"Config file {config_path} not found, using environment variables")
        return load_config_from_env()
