"""X (Twitter) API v2 adapter.

Implements the core SocialApiPort on top of a shared httpx.AsyncClient.
Every call goes through `_request`, which owns timeouts, retry
classification, and exponential backoff.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

import httpx

from adapters.payload_mapper import map_posts, map_profile
from core.config import RetryConfig
from core.errors import NotFoundError, UpstreamRequestError, UpstreamUnavailableError
from core.models import Post, ProfileSummary

LOGGER = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.twitter.com/2"
MIN_RESULTS = 5
MAX_RESULTS = 100

Sleep = Callable[[float], Awaitable[None]]

_TIMELINE_FIELDS = {
    "tweet.fields": "created_at,public_metrics,referenced_tweets,in_reply_to_user_id",
    "expansions": "author_id,in_reply_to_user_id,referenced_tweets.id",
    "user.fields": "name,username,profile_image_url",
}
_SEARCH_FIELDS = {
    "tweet.fields": "created_at,public_metrics,author_id",
    "expansions": "author_id",
    "user.fields": "name,username",
}
_PROFILE_FIELDS = {"user.fields": "name,username,description,profile_image_url,public_metrics"}


def backoff_delay(attempt: int, config: RetryConfig) -> float:
    """Seconds to wait after failed attempt number `attempt` (1-based)."""

    delay_ms = min(config.base_delay_ms * (2 ** (attempt - 1)), config.max_delay_ms)
    return delay_ms / 1000


def is_retryable_status(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500


def _clamp_limit(limit: int) -> int:
    return max(MIN_RESULTS, min(int(limit), MAX_RESULTS))


class SocialApiClient:
    """Thin async client for the social API that satisfies SocialApiPort."""

    def __init__(
        self,
        bearer_token: str,
        base_url: str = DEFAULT_BASE_URL,
        retry: Optional[RetryConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._retry = retry or RetryConfig()
        self._sleep = sleep
        self._http = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={"Authorization": f"Bearer {bearer_token}"},
            timeout=self._retry.timeout_seconds,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(self, endpoint: str, params: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        """GET an endpoint with retries; raise once attempts are exhausted."""

        attempts = self._retry.max_attempts
        last_error: Optional[Exception] = None
        for attempt in range(1, attempts + 1):
            try:
                response = await self._http.get(endpoint, params=params)
                response.raise_for_status()
                payload = response.json()
                if not isinstance(payload, dict):
                    raise ValueError(f"expected a JSON object, got {type(payload).__name__}")
                return payload
            except httpx.HTTPStatusError as exc:
                status = exc.response.status_code
                if not is_retryable_status(status):
                    raise UpstreamRequestError(
                        f"Social API rejected {endpoint} with HTTP {status}", status
                    ) from exc
                last_error = exc
            except httpx.TransportError as exc:
                last_error = exc
            except ValueError as exc:
                # Gateways sometimes answer 200 with an HTML page.
                last_error = exc

            LOGGER.error("API request failed (attempt %s/%s): %s", attempt, attempts, last_error)
            if attempt < attempts:
                delay = backoff_delay(attempt, self._retry)
                LOGGER.info("Rate limited or server error. Waiting %.1fs before retry.", delay)
                await self._sleep(delay)

        raise UpstreamUnavailableError(
            f"Social API unavailable after {attempts} attempts: {last_error}"
        ) from last_error

    async def _lookup_user(self, handle: str, params: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        handle = handle.lstrip("@")
        payload = await self._request(f"/users/by/username/{handle}", params)
        data = payload.get("data")
        if not data:
            raise NotFoundError(f"User @{handle} not found")
        return data

    async def fetch_user_id(self, handle: str) -> str:
        data = await self._lookup_user(handle)
        return str(data["id"])

    async def fetch_profile(self, handle: str) -> ProfileSummary:
        data = await self._lookup_user(handle, _PROFILE_FIELDS)
        return map_profile(data)

    async def fetch_user_posts(
        self,
        user_id: str,
        limit: int = 100,
        include_replies: bool = False,
        include_reposts: bool = False,
    ) -> list[Post]:
        params = {"max_results": _clamp_limit(limit), **_TIMELINE_FIELDS}
        payload = await self._request(f"/users/{user_id}/tweets", params)
        return map_posts(
            payload.get("data") or [],
            include_replies=include_replies,
            include_reposts=include_reposts,
        )

    async def search(self, query: str, limit: int = 100) -> list[Post]:
        params = {"query": query, "max_results": _clamp_limit(limit), **_SEARCH_FIELDS}
        payload = await self._request("/tweets/search/recent", params)
        return map_posts(payload.get("data") or [])

    async def fetch_by_hashtag(self, tag: str, limit: int = 100) -> list[Post]:
        return await self.search(f"#{tag.lstrip('#')}", limit)
