"""Deterministic answers for questions the post list can answer by itself."""

from __future__ import annotations

import re
from datetime import datetime
from typing import Optional, Sequence

from core.models import Post

LATEST_PATTERN = re.compile(r"\b(latest|last|recent) (tweet|post)\b")
MOST_LIKED_PATTERN = re.compile(r"\bmost liked\b|\bpopular (tweet|post)\b")


def format_date(value: datetime) -> str:
    """Short month/day/year date used in persona sentences."""

    return f"{value.month}/{value.day}/{value.year}"


def latest_post(posts: Sequence[Post]) -> Optional[Post]:
    """First post of a newest-first list."""

    return posts[0] if posts else None


def most_liked_post(posts: Sequence[Post]) -> Optional[Post]:
    """Post with the most likes; the earliest in the list wins ties."""

    if not posts:
        return None
    return max(posts, key=lambda post: post.like_count)


def direct_answer(question: str, posts: Sequence[Post]) -> Optional[str]:
    """Return a ready sentence, or None when the question needs the LLM.

    `posts` must already be sorted newest first.
    """

    lowered = question.lower()

    if LATEST_PATTERN.search(lowered):
        post = latest_post(posts)
        if post is not None:
            return f'My latest post was: "{post.text}" posted on {format_date(post.created_at)}.'

    if MOST_LIKED_PATTERN.search(lowered):
        post = most_liked_post(posts)
        if post is not None:
            return f'My most liked post was: "{post.text}" with {post.like_count} likes.'

    return None
