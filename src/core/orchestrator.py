"""Response orchestration.

This module is integration-agnostic. It only relies on ports and the core
cache/index services, so the CLI (or any future HTTP layer) can drive it.

Answering runs in a strict order:
1) Load post history (cache first, upstream on a miss)
2) Direct answer shortcut for questions the posts answer alone
3) Documentation grounding for product/API questions
4) Prompt assembly and one generation call
5) Keyword fallback over the posts if generation fails
"""

from __future__ import annotations

import logging
import re
from typing import Optional, Sequence, Tuple

from core.cache_keys import HASHTAG, SEARCH, USER, build_cache_key, normalize_handle
from core.cache_store import TTLCacheStore
from core.config import DocsConfig, GenerationConfig, PersonaConfig
from core.direct_answers import direct_answer
from core.errors import DoppelError, GenerationFailureError, NotFoundError
from core.models import Answer, CacheEntry, CacheEntryInfo, Post, PostQuery, PostsResult, ProfileSummary
from core.ports import GenerationPort, SocialApiPort
from core.prompts import build_messages
from core.relevance import NO_INDEX_CONTEXT, NO_MATCH_CONTEXT, RelevanceIndex
from core.single_flight import SingleFlight

LOGGER = logging.getLogger(__name__)

MIN_DOCS_CONTEXT_CHARS = 50
FALLBACK_MAX_POSTS = 3
FALLBACK_MIN_WORD_CHARS = 4

SHORT_DOCS_CONTEXT = (
    "Groq provides lightning-fast inference for AI applications through its API, supporting "
    "various models like Llama 3.3 70B, Mixtral, and others. The API is OpenAI-compatible and "
    "accessible via endpoints like https://api.groq.com/openai/v1/chat/completions with "
    "industry-leading speed and performance."
)
UNAVAILABLE_DOCS_CONTEXT = (
    "Groq provides a fast inference API compatible with OpenAI format. The API is accessible "
    "via endpoints like https://api.groq.com/openai/v1/chat/completions and offers various "
    "models with industry-leading speed."
)
NO_HISTORY_ANSWER = "I don't seem to have posted about that topic before. Feel free to ask me something else!"

_WORD_SPLIT = re.compile(r"\W+")


def sort_newest_first(posts: Sequence[Post]) -> list[Post]:
    return sorted(posts, key=lambda post: post.created_at, reverse=True)


def fallback_answer(question: str, posts: Sequence[Post]) -> str:
    """Answer from post text alone; always returns a sentence."""

    words = [word for word in _WORD_SPLIT.split(question.lower()) if len(word) >= FALLBACK_MIN_WORD_CHARS]
    relevant: list[Post] = []
    if words:
        for post in posts:
            text = post.text.lower()
            if any(word in text for word in words):
                relevant.append(post)
                if len(relevant) == FALLBACK_MAX_POSTS:
                    break
    if not relevant:
        return NO_HISTORY_ANSWER
    joined = "\n".join(post.text for post in relevant)
    return f"Based on my past posts, I can tell you that {joined}"


def _profile_from_metadata(metadata: dict) -> Optional[ProfileSummary]:
    raw = metadata.get("profile")
    if not raw:
        return None
    try:
        return ProfileSummary.from_dict(raw)
    except (KeyError, TypeError, ValueError):
        LOGGER.warning("Ignoring malformed cached profile")
        return None


def _result_from_entry(entry: CacheEntry, stale: bool = False) -> PostsResult:
    return PostsResult(
        posts=list(entry.posts),
        source="cache",
        profile=_profile_from_metadata(entry.metadata),
        cached_at=entry.cached_at,
        stale=stale,
    )


class ResponseOrchestrator:
    """Coordinates the social client, post cache, docs index, and generator."""

    def __init__(
        self,
        social: SocialApiPort,
        cache: TTLCacheStore,
        index: RelevanceIndex,
        generator: Optional[GenerationPort],
        persona: PersonaConfig,
        generation_config: GenerationConfig,
        docs_config: DocsConfig,
    ) -> None:
        self._social = social
        self._cache = cache
        self._index = index
        self._generator = generator
        self._persona = persona
        self._generation = generation_config
        self._docs = docs_config
        self._flight = SingleFlight()

    async def get_posts(self, query: PostQuery) -> PostsResult:
        """Return posts for a query, from cache when fresh, else from the upstream."""

        if not query.force_refresh:
            entry = self._cache.get(query.namespace, query.value)
            if entry is not None:
                return _result_from_entry(entry)

        storage_key = build_cache_key(query.namespace, query.value).storage_key
        try:
            return await self._flight.do(storage_key, lambda: self._fetch_and_cache(query))
        except DoppelError:
            stale = self._cache.get_stale(query.namespace, query.value)
            if stale is None:
                raise
            LOGGER.warning("Upstream failed for %s, serving stale cache from %s", storage_key, stale.cached_at)
            return _result_from_entry(stale, stale=True)

    async def _fetch_and_cache(self, query: PostQuery) -> PostsResult:
        profile: Optional[ProfileSummary] = None
        if query.namespace == USER:
            handle = normalize_handle(query.value)
            user_id = await self._social.fetch_user_id(handle)
            try:
                profile = await self._social.fetch_profile(handle)
            except DoppelError as exc:
                LOGGER.info("Could not fetch user profile for @%s: %s", handle, exc)
            posts = await self._social.fetch_user_posts(
                user_id,
                query.limit,
                include_replies=query.include_replies,
                include_reposts=query.include_reposts,
            )
            metadata = {"handle": handle, "profile": profile.to_dict() if profile else None}
        elif query.namespace == HASHTAG:
            posts = await self._social.fetch_by_hashtag(query.value.lstrip("#"), query.limit)
            metadata = {}
        elif query.namespace == SEARCH:
            posts = await self._social.search(query.value, query.limit)
            metadata = {}
        else:
            raise ValueError(f"Unsupported cache namespace: {query.namespace}")

        entry = self._cache.put(query.namespace, query.value, posts, metadata)
        return PostsResult(posts=posts, source="api", profile=profile, cached_at=entry.cached_at)

    async def warm_up(self, handle: Optional[str] = None) -> Optional[PostsResult]:
        """Populate the persona's cache ahead of the first question."""

        handle = handle or self._persona.handle
        if self._cache.get(USER, handle) is not None:
            LOGGER.info("Cache already exists for @%s", normalize_handle(handle))
            return None
        result = await self.get_posts(self._persona_query(handle))
        LOGGER.info("Cached %s posts for @%s during warmup", len(result.posts), normalize_handle(handle))
        return result

    def _persona_query(self, handle: str) -> PostQuery:
        return PostQuery(
            namespace=USER,
            value=handle,
            limit=self._persona.fetch_limit,
            include_replies=True,
            include_reposts=False,
        )

    async def answer(self, question: str, handle: Optional[str] = None) -> Answer:
        """Answer a question as the persona."""

        handle = handle or self._persona.handle
        result = await self.get_posts(self._persona_query(handle))
        if not result.posts:
            raise NotFoundError(f"No posts found for @{normalize_handle(handle)}")
        posts = sort_newest_first(result.posts)
        LOGGER.info("Answering with %s posts for @%s (%s)", len(posts), normalize_handle(handle), result.source)

        shortcut = direct_answer(question, posts)
        if shortcut is not None:
            return Answer(text=shortcut, grounded_in_docs=False, source="direct")

        docs_context = ""
        from_index = False
        if self._index.is_grounding_question(question):
            LOGGER.info("Identified as API question, retrieving relevant documentation")
            docs_context, from_index = await self._docs_context(question)

        messages = build_messages(question, posts, self._persona, result.profile, docs_context)
        try:
            text = await self._generate(messages)
        except GenerationFailureError as exc:
            LOGGER.error("Error generating response, using keyword fallback: %s", exc)
            return Answer(text=fallback_answer(question, posts), grounded_in_docs=False, source="fallback")
        return Answer(text=text, grounded_in_docs=from_index, source="generated")

    async def _docs_context(self, question: str) -> Tuple[str, bool]:
        """Documentation text for the prompt and whether it came from the index."""

        try:
            await self._index.ensure_ready()
            context = self._index.relevant_context(question, self._docs.context_limit)
        except Exception:
            LOGGER.exception("Error retrieving API docs")
            return UNAVAILABLE_DOCS_CONTEXT, False
        if len(context) < MIN_DOCS_CONTEXT_CHARS:
            LOGGER.info("Retrieved documentation too short, using fallback")
            return SHORT_DOCS_CONTEXT, False
        LOGGER.info("Retrieved %s characters of API documentation", len(context))
        return context, context not in (NO_INDEX_CONTEXT, NO_MATCH_CONTEXT)

    async def _generate(self, messages: list[dict[str, str]]) -> str:
        if self._generator is None:
            raise GenerationFailureError("No generation backend configured")
        try:
            text = await self._generator.complete(
                self._generation.model,
                messages,
                temperature=self._generation.temperature,
                max_tokens=self._generation.max_tokens,
                top_p=self._generation.top_p,
            )
        except GenerationFailureError:
            raise
        except Exception as exc:
            raise GenerationFailureError(str(exc)) from exc
        text = (text or "").strip()
        if not text:
            raise GenerationFailureError("Generation backend returned an empty response")
        return text

    def list_caches(self) -> list[CacheEntryInfo]:
        return self._cache.list_all()

    def evict(self, storage_key: str) -> bool:
        return self._cache.evict(storage_key)

    def evict_all(self) -> int:
        return self._cache.evict_all()

    def sweep(self) -> int:
        return self._cache.sweep_expired()
