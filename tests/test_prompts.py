from __future__ import annotations

from datetime import datetime, timedelta, timezone

from core.config import PersonaConfig
from core.models import Post, ProfileSummary
from core.prompts import SYSTEM_PROMPT, build_messages, build_user_prompt


def _posts(count: int) -> list[Post]:
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    return [
        Post(id=str(i), created_at=start - timedelta(days=i), text=f"post number {i}")
        for i in range(count)
    ]


def test_prompt_caps_post_context() -> None:
    persona = PersonaConfig(handle="@ozenhati", max_context_posts=3)
    prompt = build_user_prompt("hi?", _posts(10), persona)

    assert '"post number 2"' in prompt
    assert '"post number 3"' not in prompt
    assert 'Your latest post was: "post number 0" posted on 1/1/2024.' in prompt
    assert "@ozenhati" in prompt and "@@" not in prompt


def test_profile_and_docs_blocks_are_optional() -> None:
    persona = PersonaConfig(handle="ozenhati")
    bare = build_user_prompt("hi?", _posts(1), persona)
    assert "User Profile Information" not in bare
    assert "IMPORTANT GROQ API INFORMATION" not in bare

    profile = ProfileSummary(id="1", handle="ozenhati", display_name="Hatice", follower_count=10)
    full = build_user_prompt("hi?", _posts(1), persona, profile, "Rate Limits:\n30 rpm")
    assert "- Display Name: Hatice" in full
    assert "- Followers: 10" in full
    assert "- Bio" not in full
    assert "RELY ON THIS" in full and "30 rpm" in full


def test_messages_pair_system_and_user() -> None:
    messages = build_messages("hi?", _posts(1), PersonaConfig(handle="ozenhati"))
    assert [message["role"] for message in messages] == ["system", "user"]
    assert messages[0]["content"] == SYSTEM_PROMPT
    assert messages[1]["content"].endswith("Your answer (speaking as the social media user, in first person):")
