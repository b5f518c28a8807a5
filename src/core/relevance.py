"""Keyword-scored relevance index over the documentation corpus.

The corpus is split into titled sections, each tagged with keyword
categories and model names. Questions are tagged the same way and chunks
are ranked by a weighted overlap score. The built index is persisted as a
snapshot and refreshed from the network when it gets too old.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta
from typing import Any, Iterable, List, Optional

from core.cache_store import Clock, utc_now
from core.config import DocsConfig
from core.errors import CacheCorruptionError, IndexUnavailableError
from core.models import DocChunk, DocIndexSnapshot, ScoredChunk
from core.ports import DocsSourcePort, DocumentStorePort
from core.single_flight import SingleFlight

LOGGER = logging.getLogger(__name__)

SNAPSHOT_KEY = "docs_index"
INTRO_TITLE = "Introduction to Groq API"

KEYWORD_WEIGHT = 5
TITLE_WEIGHT = 2
CONTENT_WEIGHT = 1
MIN_WORD_CHARS = 4

NO_INDEX_CONTEXT = "Groq provides lightning-fast inference for AI models through its API."
NO_MATCH_CONTEXT = (
    "Groq provides lightning-fast inference for AI applications through its API, "
    "supporting various language models like Llama and Mixtral."
)

KEYWORD_CATEGORIES: dict[str, tuple[str, ...]] = {
    "models": ("model", "llama", "mixtral", "llm", "parameters", "gemma", "whisper", "qwen", "deepseek", "mistral"),
    "authentication": ("api key", "auth", "authenticate", "bearer", "token", "authorization"),
    "endpoints": ("endpoint", "chat/completions", "url", "api call", "request", "chat", "completions", "speech", "audio"),
    "parameters": ("temperature", "max_tokens", "max tokens", "top_p", "frequency_penalty", "presence_penalty", "parameter"),
    "rate limits": ("rate", "limit", "throttle", "quota", "429", "too many requests", "ratelimit"),
    "error": ("error", "exception", "issue", "problem", "bug", "fail", "failure", "trouble"),
    "pricing": ("price", "cost", "billing", "charge", "dollar", "free tier", "pay", "paid"),
    "tools": ("tool use", "function call", "function calling", "tools", "agent", "tool", "function"),
    "speech": ("speech", "audio", "transcription", "whisper", "voice", "speak"),
    "inference": ("inference", "speed", "fast", "latency", "quick", "performance", "throughput"),
}

MODEL_NAME_PATTERN = re.compile(
    r"(llama|mixtral|gemma|whisper|qwen|deepseek|mistral)[-\s]*(3|2|1)?\.?(\d+)?[b-]?",
    re.IGNORECASE,
)

SECTION_PATTERN = re.compile(r"^##\s+", re.MULTILINE)
WORD_SPLIT_PATTERN = re.compile(r"\W+")

GROUNDING_INDICATORS = (
    "groq api", "api key", "groq model", "endpoint", "groq documentation",
    "rate limit", "authenticate", "token", "parameters", "model",
    "llama", "mixtral", "whisper", "llm", "groq", "context window",
    "inference", "speech to text", "text to speech", "tools", "function",
    "integration", "sdk", "client", "request", "response", "json",
    "latency", "fast", "speed", "quick", "performance", "pricing",
    "cost", "billing", "quota", "limit", "temperature", "top_p",
    "max tokens", "python", "javascript", "node", "curl", "openai",
    "compatibility", "compatible", "how to", "api usage", "implementation",
)

GROUNDING_PATTERNS = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"how (do|can) (i|you|we) use",
        r"how (does|do) (the )?groq",
        r"what (is|are) (the )?groq",
        r"can (i|you|we) use",
        r"help with (the )?groq",
        r"explain (the )?groq",
        r"groq (api|model|inference|function)",
    )
)


def extract_keywords(text: str) -> frozenset[str]:
    """Tag text with keyword categories and lower-cased model names."""

    lowered = text.lower()
    keywords = {
        category
        for category, phrases in KEYWORD_CATEGORIES.items()
        if any(phrase in lowered for phrase in phrases)
    }
    for match in MODEL_NAME_PATTERN.finditer(text):
        name = match.group(0).lower().strip(" \t\r\n-")
        if name:
            keywords.add(name)
    return frozenset(keywords)


def question_words(question: str) -> List[str]:
    """Lower-cased words long enough to be worth text matching."""

    return [word for word in WORD_SPLIT_PATTERN.split(question.lower()) if len(word) >= MIN_WORD_CHARS]


def segment_document(text: str) -> List[DocChunk]:
    """Split a markdown corpus on "## " headings into titled chunks.

    Text before the first heading becomes the introduction chunk. Sections
    without any body are dropped.
    """

    sections = SECTION_PATTERN.split(text)
    chunks: List[DocChunk] = []

    intro = sections[0].strip()
    if intro:
        chunks.append(
            DocChunk(
                title=INTRO_TITLE,
                content=intro,
                keywords=extract_keywords(f"{INTRO_TITLE} {intro}"),
            )
        )

    for section in sections[1:]:
        if not section.strip():
            continue
        title, _, body = section.partition("\n")
        title = title.strip()
        content = body.strip()
        if not content:
            continue
        chunks.append(
            DocChunk(title=title, content=content, keywords=extract_keywords(f"{title} {content}"))
        )
    return chunks


def score_chunk(keywords: Iterable[str], words: Iterable[str], chunk: DocChunk) -> int:
    """Weighted overlap between a question and one chunk."""

    score = KEYWORD_WEIGHT * len(set(keywords) & chunk.keywords)
    title = chunk.title.lower()
    content = chunk.content.lower()
    for word in words:
        if word in title:
            score += TITLE_WEIGHT
        if word in content:
            score += CONTENT_WEIGHT
    return score


def rank_chunks(question: str, chunks: Iterable[DocChunk], limit: int) -> List[ScoredChunk]:
    """Return up to `limit` positively scored chunks, best first.

    Ties keep ingestion order.
    """

    if limit <= 0:
        return []
    keywords = extract_keywords(question)
    words = question_words(question)
    scored = [ScoredChunk(chunk=chunk, score=score_chunk(keywords, words, chunk)) for chunk in chunks]
    positive = [item for item in scored if item.score > 0]
    positive.sort(key=lambda item: item.score, reverse=True)
    return positive[:limit]


def is_grounding_question(question: str) -> bool:
    """Recall-biased guess whether a question is about the product or its API."""

    lowered = question.lower()
    indicators = [indicator for indicator in GROUNDING_INDICATORS if indicator in lowered]
    pattern_hit = any(pattern.search(question) for pattern in GROUNDING_PATTERNS)
    LOGGER.debug("Grounding check for %r: indicators=%s pattern=%s", question, indicators, pattern_hit)
    return bool(indicators) or pattern_hit


def snapshot_to_document(snapshot: DocIndexSnapshot) -> dict[str, Any]:
    return {
        "last_updated": snapshot.last_updated.isoformat(),
        "chunks": [
            {"title": chunk.title, "content": chunk.content, "keywords": sorted(chunk.keywords)}
            for chunk in snapshot.chunks
        ],
    }


def snapshot_from_document(document: dict[str, Any]) -> DocIndexSnapshot:
    try:
        chunks = [
            DocChunk(
                title=item["title"],
                content=item["content"],
                keywords=frozenset(item.get("keywords") or ()),
            )
            for item in document["chunks"]
        ]
        return DocIndexSnapshot(chunks=chunks, last_updated=datetime.fromisoformat(document["last_updated"]))
    except (KeyError, TypeError, ValueError) as exc:
        raise CacheCorruptionError(f"Malformed docs snapshot: {exc}") from exc


class RelevanceIndex:
    """Documentation index with lazy, coalesced loading."""

    def __init__(
        self,
        source: DocsSourcePort,
        store: DocumentStorePort,
        config: DocsConfig,
        clock: Clock = utc_now,
    ) -> None:
        self._source = source
        self._store = store
        self._max_age = timedelta(days=config.max_age_days)
        self._clock = clock
        self._chunks: List[DocChunk] = []
        self._last_updated: Optional[datetime] = None
        self._ready = False
        self._flight = SingleFlight()

    @property
    def is_ready(self) -> bool:
        return self._ready

    @property
    def chunks(self) -> List[DocChunk]:
        return list(self._chunks)

    async def ensure_ready(self) -> None:
        """Load a fresh snapshot or ingest the corpus; safe to call repeatedly."""

        if self._ready:
            return
        await self._flight.do(SNAPSHOT_KEY, self._initialize)

    def _load_snapshot(self) -> Optional[DocIndexSnapshot]:
        if not self._store.exists(SNAPSHOT_KEY):
            LOGGER.info("No docs snapshot found, fetching documentation")
            return None
        try:
            return snapshot_from_document(self._store.read(SNAPSHOT_KEY))
        except (CacheCorruptionError, OSError):
            LOGGER.warning("Error reading docs snapshot", exc_info=True)
            return None

    async def _initialize(self) -> None:
        snapshot = self._load_snapshot()
        if snapshot is not None:
            # Stale chunks stay in memory as a fallback if the refresh fails.
            self._chunks = snapshot.chunks
            self._last_updated = snapshot.last_updated
            if self._clock() - snapshot.last_updated < self._max_age:
                self._ready = True
                LOGGER.info("Using cached documentation (%s chunks loaded)", len(self._chunks))
                return

        try:
            raw_text = await self._source.fetch_text()
        except Exception as exc:
            LOGGER.error("Error fetching documentation: %s", exc)
            if self._chunks:
                self._ready = True
                LOGGER.info("Using %s chunks from memory despite error", len(self._chunks))
                return
            raise IndexUnavailableError("Documentation index is unavailable") from exc

        LOGGER.info("Fetched %s characters of documentation", len(raw_text))
        self.rebuild(raw_text)

    def rebuild(self, raw_text: str) -> DocIndexSnapshot:
        """Replace the in-memory index with a fresh ingest and persist it."""

        snapshot = DocIndexSnapshot(chunks=segment_document(raw_text), last_updated=self._clock())
        self._chunks = snapshot.chunks
        self._last_updated = snapshot.last_updated
        self._ready = True
        LOGGER.info("Processed documentation into %s chunks", len(snapshot.chunks))
        try:
            self._store.write(SNAPSHOT_KEY, snapshot_to_document(snapshot))
        except OSError:
            LOGGER.warning("Error writing docs snapshot", exc_info=True)
        return snapshot

    def is_grounding_question(self, question: str) -> bool:
        return is_grounding_question(question)

    def top_matches(self, question: str, limit: int = 3) -> List[ScoredChunk]:
        """Best chunks for a question; empty when nothing scores or nothing is loaded."""

        top = rank_chunks(question, self._chunks, limit)
        for item in top:
            LOGGER.debug("Docs match %r (score: %s)", item.chunk.title, item.score)
        return top

    def relevant_context(self, question: str, limit: int = 3) -> str:
        """Prompt-ready text for the best chunks, or a generic description."""

        if not self._chunks:
            LOGGER.warning("No documentation chunks available")
            return NO_INDEX_CONTEXT
        top = self.top_matches(question, limit)
        LOGGER.info("Found %s relevant documentation chunks", len(top))
        if not top:
            return NO_MATCH_CONTEXT
        return "\n\n".join(item.chunk.text for item in top)
