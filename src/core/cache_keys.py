"""Helpers for building cache keys from query inputs."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Tuple

USER = "user"
SEARCH = "search"
HASHTAG = "hashtag"
NAMESPACES = (USER, SEARCH, HASHTAG)

SEARCH_KEY_MAX_CHARS = 50

_HANDLE_UNSAFE = re.compile(r"[^a-z0-9_]+")
_SEARCH_UNSAFE = re.compile(r"[^a-z0-9]+")
STORAGE_KEY_PATTERN = re.compile(r"^[a-z0-9_]+$")


@dataclass(frozen=True)
class CacheKey:
    namespace: str
    normalized: str

    @property
    def storage_key(self) -> str:
        return f"{self.namespace}_{self.normalized}"


def normalize_handle(handle: str) -> str:
    """Lower-case a handle and drop a leading "@"."""

    return handle.strip().lower().lstrip("@")


def normalize_query_input(namespace: str, value: str) -> str:
    """Return the comparable form of a raw query.

    Two inputs with the same comparable form are the same query. This is
    stored alongside the cached record so lossy key collisions can be
    detected on read.
    """

    if namespace == USER:
        return normalize_handle(value)
    if namespace == HASHTAG:
        return value.strip().lower().lstrip("#")
    if namespace == SEARCH:
        return " ".join(value.split()).lower()
    raise ValueError(f"Unsupported cache namespace: {namespace}")


def build_cache_key(namespace: str, value: str) -> CacheKey:
    """Build the key for a query; distinct queries may share one (lossy)."""

    comparable = normalize_query_input(namespace, value)
    if namespace == SEARCH:
        normalized = _SEARCH_UNSAFE.sub("_", comparable)[:SEARCH_KEY_MAX_CHARS]
    else:
        normalized = _HANDLE_UNSAFE.sub("_", comparable)
    if not normalized.strip("_"):
        raise ValueError(f"Query input {value!r} is empty after normalization")
    return CacheKey(namespace=namespace, normalized=normalized)


def split_storage_key(storage_key: str) -> Tuple[Optional[str], str]:
    """Split a storage key into (namespace, normalized); namespace is None if unknown."""

    namespace, sep, rest = storage_key.partition("_")
    if not sep or namespace not in NAMESPACES:
        return None, storage_key
    return namespace, rest


def is_valid_storage_key(storage_key: str) -> bool:
    return bool(STORAGE_KEY_PATTERN.match(storage_key))
