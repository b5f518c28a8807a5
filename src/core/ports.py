"""Ports (interfaces) used by the core.

Ports define the minimal contracts for storage, upstream, and generation
adapters so that the core can be reused with different backends.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional, Protocol, Sequence

from core.models import Post, ProfileSummary, StoredRecordInfo


class DocumentStorePort(Protocol):
    """Flat key -> JSON document store."""

    def exists(self, key: str) -> bool:
        ...

    def read(self, key: str) -> dict[str, Any]:
        ...

    def write(self, key: str, document: dict[str, Any]) -> None:
        ...

    def keys(self) -> Iterable[str]:
        ...

    def delete(self, key: str) -> bool:
        ...

    def stat(self, key: str) -> Optional[StoredRecordInfo]:
        ...


class SocialApiPort(Protocol):
    """Social-data operations required by the orchestrator."""

    async def fetch_user_id(self, handle: str) -> str:
        ...

    async def fetch_profile(self, handle: str) -> ProfileSummary:
        ...

    async def fetch_user_posts(
        self,
        user_id: str,
        limit: int = 100,
        include_replies: bool = False,
        include_reposts: bool = False,
    ) -> list[Post]:
        ...

    async def fetch_by_hashtag(self, tag: str, limit: int = 100) -> list[Post]:
        ...

    async def search(self, query: str, limit: int = 100) -> list[Post]:
        ...


class GenerationPort(Protocol):
    """Chat-completion backend."""

    async def complete(
        self,
        model: str,
        messages: Sequence[dict[str, str]],
        temperature: float,
        max_tokens: int,
        top_p: float,
    ) -> str:
        ...


class DocsSourcePort(Protocol):
    """Where the raw documentation corpus comes from."""

    async def fetch_text(self) -> str:
        ...
