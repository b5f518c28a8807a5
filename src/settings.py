"""Static configuration for doppel.

All user-editable settings (persona, upstream, cache, docs, generation,
logging) live in a single JSON file for quick edits without touching Python.
Secrets stay in the environment (see client.py).
"""

import json
import os

from core.config import CacheConfig, DocsConfig, GenerationConfig, PersonaConfig, RetryConfig

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

CONFIG_PATH = os.getenv("DOPPEL_CONFIG", os.path.join(PROJECT_ROOT, "config.json"))


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _project_path(path: str) -> str:
    if os.path.isabs(path):
        return path
    return os.path.join(PROJECT_ROOT, path)


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# The persona every answer is written as.
_persona = _CONFIG.get("persona", {})
PERSONA = PersonaConfig(
    handle=_persona.get("handle", "ozenhati"),
    role=_persona.get("role", "Head of Developer Relations at Groq"),
    max_context_posts=int(_persona.get("max_context_posts", 500)),
    fetch_limit=int(_persona.get("fetch_limit", 100)),
)

# Social API endpoint and retry policy.
_upstream = _CONFIG.get("upstream", {})
UPSTREAM_BASE_URL = _upstream.get("base_url", "https://api.twitter.com/2")
RETRY = RetryConfig(
    max_attempts=int(_upstream.get("max_retries", 3)),
    base_delay_ms=int(_upstream.get("retry_delay_ms", 1000)),
    max_delay_ms=int(_upstream.get("max_retry_delay_ms", 30000)),
    timeout_seconds=float(_upstream.get("timeout_seconds", 10)),
)

# Post cache location and expiry. The sweep runs in `doppel run`.
_cache = _CONFIG.get("cache", {})
CACHE_DIR = _project_path(_cache.get("dir", "cache/posts"))
CACHE = CacheConfig(max_age_hours=float(_cache.get("max_age_hours", 24)))
SWEEP_INTERVAL_HOURS = float(_cache.get("sweep_interval_hours", 1))

# Documentation corpus used for grounding.
_docs = _CONFIG.get("docs", {})
DOCS_URL = _docs.get("url", "https://console.groq.com/llms-full.txt")
DOCS_DIR = _project_path(_docs.get("dir", "cache/docs"))
DOCS = DocsConfig(
    max_age_days=float(_docs.get("max_age_days", 7)),
    context_limit=int(_docs.get("context_limit", 3)),
)

# Generation backend and sampling parameters.
_generation = _CONFIG.get("generation", {})
GENERATION_BASE_URL = _generation.get("base_url", "https://api.groq.com/openai/v1")
GENERATION_TIMEOUT_SECONDS = float(_generation.get("timeout_seconds", 30))
GENERATION = GenerationConfig(
    model=_generation.get("model", "llama-3.3-70b-versatile"),
    temperature=float(_generation.get("temperature", 0.5)),
    max_tokens=int(_generation.get("max_tokens", 300)),
    top_p=float(_generation.get("top_p", 1)),
)

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
