"""Social API payload to core model mapping.

This keeps upstream payload shapes out of the core. Every optional field
has an explicit default instead of trusting the shape at runtime.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional

from core.models import Post, ProfileSummary

REPOST_REFERENCE_TYPE = "retweeted"


def _parse_timestamp(raw: Optional[str]) -> datetime:
    if not raw:
        return datetime.fromtimestamp(0, tz=timezone.utc)
    # The upstream uses a trailing "Z"; fromisoformat wants an explicit offset.
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    parsed = datetime.fromisoformat(raw)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _count(metrics: Any, name: str) -> int:
    if not isinstance(metrics, dict):
        return 0
    value = metrics.get(name)
    try:
        return max(int(value), 0)
    except (TypeError, ValueError):
        return 0


def is_repost(raw: dict[str, Any]) -> bool:
    references = raw.get("referenced_tweets") or []
    return any(isinstance(ref, dict) and ref.get("type") == REPOST_REFERENCE_TYPE for ref in references)


def is_reply(raw: dict[str, Any]) -> bool:
    return bool(raw.get("in_reply_to_user_id"))


def map_post(raw: dict[str, Any]) -> Post:
    """Build a Post from one upstream item."""

    metrics = raw.get("public_metrics")
    author_id = raw.get("author_id")
    return Post(
        id=str(raw["id"]),
        created_at=_parse_timestamp(raw.get("created_at")),
        text=raw.get("text") or "",
        like_count=_count(metrics, "like_count"),
        repost_count=_count(metrics, "retweet_count"),
        author_id=str(author_id) if author_id is not None else None,
    )


def map_posts(
    items: Iterable[dict[str, Any]],
    include_replies: bool = True,
    include_reposts: bool = True,
) -> List[Post]:
    """Map upstream items, dropping replies and reposts unless requested."""

    posts: List[Post] = []
    for raw in items:
        if not include_reposts and is_repost(raw):
            continue
        if not include_replies and is_reply(raw):
            continue
        posts.append(map_post(raw))
    return posts


def map_profile(raw: dict[str, Any]) -> ProfileSummary:
    """Build a ProfileSummary from an upstream user object."""

    metrics = raw.get("public_metrics") if isinstance(raw.get("public_metrics"), dict) else {}
    return ProfileSummary(
        id=str(raw["id"]),
        handle=raw.get("username") or "",
        display_name=raw.get("name"),
        bio=raw.get("description"),
        follower_count=metrics.get("followers_count"),
        following_count=metrics.get("following_count"),
        post_count=metrics.get("tweet_count"),
    )
