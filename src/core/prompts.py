"""Prompt assembly for persona answers."""

from __future__ import annotations

from typing import Optional, Sequence

from core.config import PersonaConfig
from core.direct_answers import format_date
from core.models import Post, ProfileSummary

SYSTEM_PROMPT = (
    "You are an AI assistant that responds with brief, accurate answers based on the given "
    "post data and API documentation. If the user asks about Groq's API, models, or technical "
    "details, focus on the provided API information. Limit responses to 1-3 sentences in a "
    "conversational tone."
)


def _profile_block(profile: ProfileSummary) -> str:
    lines = ["User Profile Information:", f"- Handle: @{profile.handle}"]
    if profile.display_name:
        lines.append(f"- Display Name: {profile.display_name}")
    if profile.bio:
        lines.append(f"- Bio: {profile.bio}")
    if profile.follower_count is not None:
        lines.append(f"- Followers: {profile.follower_count}")
    if profile.following_count is not None:
        lines.append(f"- Following: {profile.following_count}")
    if profile.post_count is not None:
        lines.append(f"- Total Posts: {profile.post_count}")
    return "\n".join(lines)


def _post_lines(posts: Sequence[Post]) -> str:
    return "\n".join(
        f'Post {index} ({format_date(post.created_at)}): "{post.text}"'
        for index, post in enumerate(posts, start=1)
    )


def build_user_prompt(
    question: str,
    posts: Sequence[Post],
    persona: PersonaConfig,
    profile: Optional[ProfileSummary] = None,
    docs_context: str = "",
) -> str:
    """Build the user message; `posts` must be sorted newest first."""

    handle = persona.handle.lstrip("@")
    parts = [
        f"You are acting as the social media user represented in these posts, who is "
        f"{persona.role}. Your handle is @{handle}. Pronounce Groq exactly as it is spelled "
        f"(it rhymes with rock). You are not a human, just an app built by @{handle}. Answer "
        f"the following question based on the content of your posts and what you know about "
        f"Groq. Keep your answers concise, conversational, and under 3 sentences when possible.",
    ]
    if profile is not None:
        parts.append(_profile_block(profile))
    if docs_context:
        parts.append(
            "IMPORTANT GROQ API INFORMATION - RELY ON THIS TO ANSWER QUESTIONS ABOUT THE GROQ "
            f"API, MODELS, OR TECHNICAL DETAILS:\n{docs_context}"
        )
    recent = posts[: persona.max_context_posts]
    parts.append(f"Your recent posts:\n{_post_lines(recent)}")
    if posts:
        latest = posts[0]
        parts.append(f'Your latest post was: "{latest.text}" posted on {format_date(latest.created_at)}.')
    parts.append(f'Question: "{question}"')
    parts.append("Your answer (speaking as the social media user, in first person):")
    return "\n\n".join(parts)


def build_messages(
    question: str,
    posts: Sequence[Post],
    persona: PersonaConfig,
    profile: Optional[ProfileSummary] = None,
    docs_context: str = "",
) -> list[dict[str, str]]:
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": build_user_prompt(question, posts, persona, profile, docs_context)},
    ]
