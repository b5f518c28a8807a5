from __future__ import annotations

import pytest

from core.cache_keys import (
    HASHTAG,
    SEARCH,
    SEARCH_KEY_MAX_CHARS,
    USER,
    build_cache_key,
    is_valid_storage_key,
    normalize_query_input,
    split_storage_key,
)


def test_user_keys_ignore_case_and_at_sign() -> None:
    assert build_cache_key(USER, "@OzenHati") == build_cache_key(USER, "ozenhati")
    assert build_cache_key(USER, "ozenhati").storage_key == "user_ozenhati"


def test_hashtag_keys_drop_hash_prefix() -> None:
    assert build_cache_key(HASHTAG, "#GroqSpeed").storage_key == "hashtag_groqspeed"


def test_search_keys_collapse_and_cap() -> None:
    key = build_cache_key(SEARCH, "  Groq   API -- latency?! ")
    assert key.storage_key == "search_groq_api_latency_"

    long_key = build_cache_key(SEARCH, "word " * 40)
    assert len(long_key.normalized) == SEARCH_KEY_MAX_CHARS


def test_logically_equal_search_queries_share_a_key() -> None:
    assert build_cache_key(SEARCH, "Groq API") == build_cache_key(SEARCH, "  groq   api ")
    assert normalize_query_input(SEARCH, "Groq API") == normalize_query_input(SEARCH, "  groq   api ")


def test_lossy_search_keys_can_collide() -> None:
    first = build_cache_key(SEARCH, "groq-api")
    second = build_cache_key(SEARCH, "groq api")
    assert first == second
    assert normalize_query_input(SEARCH, "groq-api") != normalize_query_input(SEARCH, "groq api")


def test_unknown_namespace_and_empty_input_are_rejected() -> None:
    with pytest.raises(ValueError):
        build_cache_key("timeline", "x")
    with pytest.raises(ValueError):
        build_cache_key(SEARCH, "?!")


def test_storage_key_helpers() -> None:
    assert split_storage_key("search_groq_api") == (SEARCH, "groq_api")
    assert split_storage_key("docs_index") == (None, "docs_index")
    assert is_valid_storage_key("user_ozenhati")
    assert not is_valid_storage_key("../etc/passwd")
