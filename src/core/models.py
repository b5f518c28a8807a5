"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any upstream payload shapes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional


@dataclass(frozen=True)
class Post:
    """A single social post with engagement counters."""

    id: str
    created_at: datetime
    text: str
    like_count: int = 0
    repost_count: int = 0
    author_id: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "created_at": self.created_at.isoformat(),
            "text": self.text,
            "like_count": self.like_count,
            "repost_count": self.repost_count,
        }
        if self.author_id is not None:
            payload["author_id"] = self.author_id
        return payload

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "Post":
        return cls(
            id=str(payload["id"]),
            created_at=datetime.fromisoformat(payload["created_at"]),
            text=payload.get("text") or "",
            like_count=int(payload.get("like_count") or 0),
            repost_count=int(payload.get("repost_count") or 0),
            author_id=payload.get("author_id"),
        )


@dataclass(frozen=True)
class ProfileSummary:
    """Public profile fields used to give the persona some context."""

    id: str
    handle: str
    display_name: Optional[str] = None
    bio: Optional[str] = None
    follower_count: Optional[int] = None
    following_count: Optional[int] = None
    post_count: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "handle": self.handle,
            "display_name": self.display_name,
            "bio": self.bio,
            "follower_count": self.follower_count,
            "following_count": self.following_count,
            "post_count": self.post_count,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "ProfileSummary":
        return cls(
            id=str(payload["id"]),
            handle=payload.get("handle") or "",
            display_name=payload.get("display_name"),
            bio=payload.get("bio"),
            follower_count=payload.get("follower_count"),
            following_count=payload.get("following_count"),
            post_count=payload.get("post_count"),
        )


@dataclass(frozen=True)
class CacheEntry:
    """One persisted result set, read back from the cache store."""

    storage_key: str
    cached_at: datetime
    post_count: int
    metadata: dict[str, Any]
    posts: list[Post]


@dataclass(frozen=True)
class CacheEntryInfo:
    """Enumeration descriptor; `error` is set when the record is unreadable."""

    storage_key: str
    namespace: Optional[str] = None
    cached_at: Optional[datetime] = None
    post_count: Optional[int] = None
    metadata: Optional[dict[str, Any]] = None
    size_bytes: Optional[int] = None
    age_hours: Optional[int] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class StoredRecordInfo:
    """Filesystem-level facts about a stored document."""

    modified_at: datetime
    size_bytes: int


@dataclass(frozen=True)
class DocChunk:
    """A titled section of the documentation corpus."""

    title: str
    content: str
    keywords: frozenset[str] = field(default_factory=frozenset)

    @property
    def text(self) -> str:
        return f"{self.title}:\n{self.content}"


@dataclass(frozen=True)
class DocIndexSnapshot:
    """All chunks of one ingest plus the time it happened."""

    chunks: list[DocChunk]
    last_updated: datetime


@dataclass(frozen=True)
class ScoredChunk:
    chunk: DocChunk
    score: int


@dataclass(frozen=True)
class PostQuery:
    """What to fetch: a namespace plus the raw query input and fetch options."""

    namespace: str
    value: str
    limit: int = 100
    include_replies: bool = False
    include_reposts: bool = False
    force_refresh: bool = False


@dataclass(frozen=True)
class PostsResult:
    posts: list[Post]
    source: str
    profile: Optional[ProfileSummary] = None
    cached_at: Optional[datetime] = None
    stale: bool = False


@dataclass(frozen=True)
class Answer:
    """Final answer text plus how it was produced."""

    text: str
    grounded_in_docs: bool
    source: str
