"""Configuration settings for the switchboard intelligence service."""

import logging
import os
from dotenv import load_dotenv

load_dotenv()

# Logging setup
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL),
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
    datefmt="%H:%M:%S",
)

# Together.ai (OpenAI-compatible, used for sensitivity levels 1-4)
# Available models:
# - meta-llama/Llama-3.3-70B-Instruct-Turbo (default)
# - Qwen/Qwen2.5-72B-Instruct-Turbo
TOGETHER_API_KEY = os.getenv("TOGETHER_API_KEY")
TOGETHER_BASE_URL = os.getenv("TOGETHER_BASE_URL", "https://api.together.xyz/v1")
TOGETHER_DEFAULT_MODEL = os.getenv(
    "TOGETHER_DEFAULT_MODEL", "meta-llama/Llama-3.3-70B-Instruct-Turbo"
)

# Anthropic (direct API, used for sensitivity levels 5-6)
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY")
ANTHROPIC_DEFAULT_MODEL = os.getenv("ANTHROPIC_DEFAULT_MODEL", "claude-sonnet-4-6")

# Neo4j knowledge graph (Query API over HTTP)
NEO4J_URI = os.getenv("NEO4J_URI")
NEO4J_USERNAME = os.getenv("NEO4J_USERNAME", "neo4j")
NEO4J_PASSWORD = os.getenv("NEO4J_PASSWORD")
NEO4J_DATABASE = os.getenv("NEO4J_DATABASE", "neo4j")

# Redis cache
REDIS_URL = os.getenv("REDIS_URL")
REDIS_KEY_PREFIX = "onevice:"

# Supabase (user_agents and agent_sessions tables)
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY") or os.getenv("SUPABASE_ANON_KEY")

# Folk CRM (one key per workspace, tried in order)
FOLK_BASE_URL = "https://api.folk.app/v1"
FOLK_API_KEYS = [
    key for key in (os.getenv("FOLK_API_KEY_1"), os.getenv("FOLK_API_KEY_2")) if key
]

# Shared credential for the HTTP API
SERVICE_KEY = os.getenv("SWITCHBOARD_SERVICE_KEY", "")

# Reasoning loop
MAX_ITERATIONS = 5
MAX_HISTORY_MESSAGES = 20
