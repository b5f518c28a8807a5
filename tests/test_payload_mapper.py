from __future__ import annotations

from datetime import datetime, timezone

from adapters.payload_mapper import map_post, map_posts, map_profile


def _raw(post_id: str, **extra) -> dict:
    payload = {
        "id": post_id,
        "created_at": "2024-03-01T12:00:00.000Z",
        "text": f"post {post_id}",
        "public_metrics": {"like_count": 3, "retweet_count": 2},
    }
    payload.update(extra)
    return payload


def test_map_post_parses_timestamp_and_counters() -> None:
    post = map_post(_raw("1", author_id=99))

    assert post.id == "1"
    assert post.created_at == datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
    assert post.like_count == 3
    assert post.repost_count == 2
    assert post.author_id == "99"


def test_missing_counters_default_to_zero() -> None:
    post = map_post({"id": "7", "created_at": "2024-03-01T12:00:00Z", "text": "bare"})

    assert post.like_count == 0
    assert post.repost_count == 0
    assert post.author_id is None


def test_reposts_and_replies_are_dropped_unless_requested() -> None:
    items = [
        _raw("1"),
        _raw("2", referenced_tweets=[{"type": "retweeted", "id": "x"}]),
        _raw("3", in_reply_to_user_id="55"),
        _raw("4", referenced_tweets=[{"type": "quoted", "id": "y"}]),
    ]

    assert [p.id for p in map_posts(items, include_replies=False, include_reposts=False)] == ["1", "4"]
    assert [p.id for p in map_posts(items, include_replies=True, include_reposts=False)] == ["1", "3", "4"]
    assert [p.id for p in map_posts(items, include_replies=False, include_reposts=True)] == ["1", "2", "4"]


def test_map_profile_tolerates_missing_metrics() -> None:
    profile = map_profile({"id": "1", "username": "ozenhati", "name": "Hatice"})

    assert profile.handle == "ozenhati"
    assert profile.display_name == "Hatice"
    assert profile.bio is None
    assert profile.follower_count is None
