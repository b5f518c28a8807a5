from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone

from adapters.file_storage import JsonFileStore
from core.cache_keys import HASHTAG, SEARCH, USER
from core.cache_store import TTLCacheStore
from core.config import CacheConfig
from core.models import Post


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime.now(timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


def _posts() -> list[Post]:
    return [
        Post(
            id="2",
            created_at=datetime(2024, 5, 2, tzinfo=timezone.utc),
            text="second",
            like_count=7,
            repost_count=1,
        ),
        Post(
            id="1",
            created_at=datetime(2024, 5, 1, tzinfo=timezone.utc),
            text="first",
            author_id="42",
        ),
    ]


def _make_cache(tmp_path, clock: FakeClock) -> tuple[TTLCacheStore, JsonFileStore]:
    store = JsonFileStore(str(tmp_path / "posts"))
    store.init_dir()
    return TTLCacheStore(store, CacheConfig(max_age_hours=24), clock=clock), store


def _age_file(store: JsonFileStore, key: str, hours: float) -> None:
    path = os.path.join(store.directory, f"{key}.json")
    stamp = (datetime.now(timezone.utc) - timedelta(hours=hours)).timestamp()
    os.utime(path, (stamp, stamp))


def test_put_then_get_round_trips_every_namespace(tmp_path) -> None:
    clock = FakeClock()
    cache, _ = _make_cache(tmp_path, clock)

    for namespace, query in ((USER, "@OzenHati"), (SEARCH, "groq api"), (HASHTAG, "#groq")):
        cache.put(namespace, query, _posts(), {"source": "test"})
        entry = cache.get(namespace, query)
        assert entry is not None
        assert entry.posts == _posts()
        assert entry.post_count == 2
        assert entry.metadata["source"] == "test"
        assert abs(clock() - entry.cached_at) < timedelta(seconds=1)


def test_get_misses_once_max_age_is_exceeded(tmp_path) -> None:
    clock = FakeClock()
    cache, store = _make_cache(tmp_path, clock)
    cache.put(USER, "ozenhati", _posts())

    clock.advance(timedelta(hours=25))

    assert cache.get(USER, "ozenhati") is None
    # The record is still on disk until swept.
    assert store.exists("user_ozenhati")
    assert cache.get(USER, "ozenhati", max_age=timedelta(hours=48)) is not None
    assert cache.get_stale(USER, "ozenhati") is not None


def test_put_overwrites_existing_record(tmp_path) -> None:
    cache, _ = _make_cache(tmp_path, FakeClock())
    cache.put(USER, "ozenhati", _posts())
    cache.put(USER, "ozenhati", _posts()[:1])

    entry = cache.get(USER, "ozenhati")
    assert entry is not None
    assert [post.id for post in entry.posts] == ["2"]


def test_colliding_search_queries_do_not_share_records(tmp_path) -> None:
    cache, _ = _make_cache(tmp_path, FakeClock())
    cache.put(SEARCH, "groq-api", _posts())

    assert cache.get(SEARCH, "groq api") is None
    assert cache.get(SEARCH, "Groq-API") is not None


def test_corrupt_record_is_a_miss_and_listed_with_error(tmp_path) -> None:
    cache, store = _make_cache(tmp_path, FakeClock())
    cache.put(USER, "good", _posts())
    with open(os.path.join(store.directory, "user_broken.json"), "w", encoding="utf-8") as handle:
        handle.write("{not json")

    assert cache.get(USER, "broken") is None

    infos = {info.storage_key: info for info in cache.list_all()}
    assert infos["user_broken"].error
    assert infos["user_good"].error is None
    assert infos["user_good"].post_count == 2
    assert infos["user_good"].metadata["query"] == "good"
    assert infos["user_good"].namespace == USER
    assert infos["user_good"].size_bytes > 0


def test_undecodable_record_is_a_miss_and_listed_with_error(tmp_path) -> None:
    cache, store = _make_cache(tmp_path, FakeClock())
    cache.put(USER, "good", _posts())
    with open(os.path.join(store.directory, "user_bad.json"), "wb") as handle:
        handle.write(b"\xff\xfe garbage")

    assert cache.get(USER, "bad") is None
    assert cache.get_stale(USER, "bad") is None

    infos = {info.storage_key: info for info in cache.list_all()}
    assert infos["user_bad"].error
    assert infos["user_bad"].namespace == USER
    assert infos["user_good"].post_count == 2


def test_sweep_removes_exactly_the_expired_records(tmp_path) -> None:
    cache, store = _make_cache(tmp_path, FakeClock())
    for handle in ("fresh", "borderline", "old", "ancient"):
        cache.put(USER, handle, _posts())
    with open(os.path.join(store.directory, "user_corrupt.json"), "w", encoding="utf-8") as handle:
        handle.write("oops")

    _age_file(store, "user_borderline", 23)
    _age_file(store, "user_old", 25)
    _age_file(store, "user_ancient", 24 * 30)
    _age_file(store, "user_corrupt", 48)

    removed = cache.sweep_expired()

    assert removed == 3
    assert sorted(store.keys()) == ["user_borderline", "user_fresh"]


def test_sweep_honours_max_age_override(tmp_path) -> None:
    cache, store = _make_cache(tmp_path, FakeClock())
    cache.put(USER, "a", _posts())
    _age_file(store, "user_a", 2)

    assert cache.sweep_expired(max_age=timedelta(hours=3)) == 0
    assert cache.sweep_expired(max_age=timedelta(hours=1)) == 1


def test_evict_is_idempotent(tmp_path) -> None:
    cache, _ = _make_cache(tmp_path, FakeClock())
    cache.put(HASHTAG, "groq", _posts())

    assert cache.evict("hashtag_groq") is True
    assert cache.evict("hashtag_groq") is False
    assert cache.evict("../outside") is False


def test_evict_all_counts_removed_records(tmp_path) -> None:
    cache, store = _make_cache(tmp_path, FakeClock())
    cache.put(USER, "a", _posts())
    cache.put(SEARCH, "b", _posts())

    assert cache.evict_all() == 2
    assert list(store.keys()) == []
    assert cache.evict_all() == 0
