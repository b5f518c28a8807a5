"""Upstream client factories for doppel.

Secrets are read from the environment (via python-dotenv) so they stay out
of config.json and the repo.
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

import settings
from adapters.generation import OpenAICompatibleGenerator
from adapters.social_api import SocialApiClient

SOCIAL_TOKEN_ENV = "TWITTER_BEARER_TOKEN"
GENERATION_KEY_ENV = "GROQ_API_KEY"
SECRET_ENV_VARS = (SOCIAL_TOKEN_ENV, GENERATION_KEY_ENV)


def _require_env(name: str) -> str:
    value = os.getenv(name)
    # Fail fast on missing credentials instead of a 401 loop later.
    if not value:
        raise RuntimeError(f"Missing {name} in environment")
    return value


def build_social_client() -> SocialApiClient:
    """Create the social API client from TWITTER_BEARER_TOKEN."""

    load_dotenv()
    token = _require_env(SOCIAL_TOKEN_ENV)
    logging.getLogger(__name__).info("Initializing social API client for %s", settings.UPSTREAM_BASE_URL)
    return SocialApiClient(token, base_url=settings.UPSTREAM_BASE_URL, retry=settings.RETRY)


def build_generator() -> OpenAICompatibleGenerator:
    """Create the generation backend from GROQ_API_KEY."""

    load_dotenv()
    api_key = _require_env(GENERATION_KEY_ENV)
    logging.getLogger(__name__).info("Initializing generation backend (%s)", settings.GENERATION.model)
    return OpenAICompatibleGenerator(
        api_key,
        base_url=settings.GENERATION_BASE_URL,
        timeout_seconds=settings.GENERATION_TIMEOUT_SECONDS,
    )
