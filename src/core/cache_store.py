"""TTL cache of fetched post sets.

Records live in a DocumentStorePort, one document per cache key. Expiry is
checked lazily on every read and proactively by `sweep_expired`. Both use
the store's modification time and the injected wall clock.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Iterable, Optional

from core.cache_keys import build_cache_key, normalize_query_input, split_storage_key
from core.config import CacheConfig
from core.errors import CacheCorruptionError
from core.models import CacheEntry, CacheEntryInfo, Post
from core.ports import DocumentStorePort

LOGGER = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_entry(storage_key: str, document: dict[str, Any]) -> CacheEntry:
    try:
        posts = [Post.from_dict(item) for item in document["posts"]]
        return CacheEntry(
            storage_key=storage_key,
            cached_at=datetime.fromisoformat(document["cached_at"]),
            post_count=int(document.get("count", len(posts))),
            metadata=dict(document.get("metadata") or {}),
            posts=posts,
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise CacheCorruptionError(f"Malformed cache record {storage_key}: {exc}") from exc


class TTLCacheStore:
    """Persists post sets by (namespace, query) and serves them while fresh."""

    def __init__(
        self,
        store: DocumentStorePort,
        config: CacheConfig,
        clock: Clock = utc_now,
    ) -> None:
        self._store = store
        self._default_max_age = timedelta(hours=config.max_age_hours)
        self._clock = clock

    def _effective_max_age(self, max_age: Optional[timedelta]) -> timedelta:
        return self._default_max_age if max_age is None else max_age

    def _age(self, storage_key: str) -> Optional[timedelta]:
        info = self._store.stat(storage_key)
        if info is None:
            return None
        return self._clock() - info.modified_at

    def _load(self, namespace: str, query: str, max_age: Optional[timedelta]) -> Optional[CacheEntry]:
        key = build_cache_key(namespace, query)
        storage_key = key.storage_key
        if not self._store.exists(storage_key):
            return None

        if max_age is not None:
            age = self._age(storage_key)
            if age is None:
                return None
            if age > max_age:
                LOGGER.info("Cache expired for %s", storage_key)
                return None

        try:
            entry = _parse_entry(storage_key, self._store.read(storage_key))
        except CacheCorruptionError:
            LOGGER.warning("Ignoring unreadable cache record %s", storage_key, exc_info=True)
            return None

        # Lossy keys can collide; the stored original query disambiguates.
        stored_query = entry.metadata.get("query")
        if stored_query is not None and stored_query != normalize_query_input(namespace, query):
            LOGGER.info("Cache key %s holds a different query (%r)", storage_key, stored_query)
            return None

        LOGGER.info("Loaded %s posts from cache %s", entry.post_count, storage_key)
        return entry

    def get(
        self,
        namespace: str,
        query: str,
        max_age: Optional[timedelta] = None,
    ) -> Optional[CacheEntry]:
        """Return the cached entry for a query, or None if missing/expired/unreadable."""

        return self._load(namespace, query, self._effective_max_age(max_age))

    def get_stale(self, namespace: str, query: str) -> Optional[CacheEntry]:
        """Return the cached entry regardless of age."""

        return self._load(namespace, query, None)

    def put(
        self,
        namespace: str,
        query: str,
        posts: Iterable[Post],
        metadata: Optional[dict[str, Any]] = None,
    ) -> CacheEntry:
        """Write (and overwrite) the record for a query."""

        key = build_cache_key(namespace, query)
        posts = list(posts)
        meta = dict(metadata or {})
        meta["query"] = normalize_query_input(namespace, query)
        cached_at = self._clock()
        self._store.write(
            key.storage_key,
            {
                "cached_at": cached_at.isoformat(),
                "count": len(posts),
                "metadata": meta,
                "posts": [post.to_dict() for post in posts],
            },
        )
        LOGGER.info("Cached %s posts to %s", len(posts), key.storage_key)
        return CacheEntry(
            storage_key=key.storage_key,
            cached_at=cached_at,
            post_count=len(posts),
            metadata=meta,
            posts=posts,
        )

    def list_all(self) -> list[CacheEntryInfo]:
        """Describe every stored record; unreadable ones carry an error."""

        infos: list[CacheEntryInfo] = []
        now = self._clock()
        for storage_key in sorted(self._store.keys()):
            namespace, _ = split_storage_key(storage_key)
            try:
                stat = self._store.stat(storage_key)
                entry = _parse_entry(storage_key, self._store.read(storage_key))
            except (CacheCorruptionError, OSError) as exc:
                infos.append(CacheEntryInfo(storage_key=storage_key, namespace=namespace, error=str(exc)))
                continue
            age_hours = None
            size_bytes = None
            if stat is not None:
                size_bytes = stat.size_bytes
                age_hours = int((now - stat.modified_at) / timedelta(hours=1))
            infos.append(
                CacheEntryInfo(
                    storage_key=storage_key,
                    namespace=namespace,
                    cached_at=entry.cached_at,
                    post_count=entry.post_count,
                    metadata=entry.metadata,
                    size_bytes=size_bytes,
                    age_hours=age_hours,
                )
            )
        return infos

    def evict(self, storage_key: str) -> bool:
        """Delete one record; False if it did not exist."""

        return self._store.delete(storage_key)

    def evict_all(self) -> int:
        """Delete every record and return how many were removed."""

        removed = 0
        for storage_key in list(self._store.keys()):
            try:
                if self._store.delete(storage_key):
                    removed += 1
            except OSError:
                LOGGER.exception("Error deleting cache record %s", storage_key)
        return removed

    def sweep_expired(self, max_age: Optional[timedelta] = None) -> int:
        """Delete every record older than the max-age, readable or not."""

        effective = self._effective_max_age(max_age)
        removed = 0
        for storage_key in list(self._store.keys()):
            try:
                age = self._age(storage_key)
                if age is not None and age > effective:
                    if self._store.delete(storage_key):
                        LOGGER.info("Cleaned old cache: %s", storage_key)
                        removed += 1
            except OSError:
                LOGGER.exception("Error processing cache record %s", storage_key)
        return removed
