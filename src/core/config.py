"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RetryConfig:
    """Retry and backoff settings for upstream API calls."""

    max_attempts: int = 3
    base_delay_ms: int = 1000
    max_delay_ms: int = 30000
    timeout_seconds: float = 10.0


@dataclass(frozen=True)
class CacheConfig:
    """Post cache expiry settings."""

    max_age_hours: float = 24


@dataclass(frozen=True)
class DocsConfig:
    """Documentation index settings."""

    max_age_days: float = 7
    context_limit: int = 3


@dataclass(frozen=True)
class GenerationConfig:
    """Sampling parameters sent with every completion request."""

    model: str = "llama-3.3-70b-versatile"
    temperature: float = 0.5
    max_tokens: int = 300
    top_p: float = 1.0


@dataclass(frozen=True)
class PersonaConfig:
    """Who the answers are written as."""

    handle: str
    role: str = "Head of Developer Relations at Groq"
    max_context_posts: int = 500
    fetch_limit: int = 100
