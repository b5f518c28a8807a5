"""JSON file storage adapter.

Implements the core DocumentStorePort with one pretty-printed JSON file per
key inside a single directory.
"""

from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from core.cache_keys import is_valid_storage_key
from core.errors import CacheCorruptionError
from core.models import StoredRecordInfo

SUFFIX = ".json"


class JsonFileStore:
    """Flat key -> JSON document store backed by a directory."""

    def __init__(self, directory: str) -> None:
        self._directory = directory

    @property
    def directory(self) -> str:
        return self._directory

    def init_dir(self) -> None:
        """Create the backing directory if it does not exist."""

        os.makedirs(self._directory, exist_ok=True)

    def _path(self, key: str) -> str:
        # Keys become file names, so anything outside [a-z0-9_] is refused.
        if not is_valid_storage_key(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return os.path.join(self._directory, f"{key}{SUFFIX}")

    def exists(self, key: str) -> bool:
        if not is_valid_storage_key(key):
            return False
        return os.path.isfile(self._path(key))

    def read(self, key: str) -> dict[str, Any]:
        with open(self._path(key), "r", encoding="utf-8") as handle:
            try:
                document = json.load(handle)
            except ValueError as exc:
                # Covers both malformed JSON and bytes that are not UTF-8.
                raise CacheCorruptionError(f"Unparsable record {key}: {exc}") from exc
        if not isinstance(document, dict):
            raise CacheCorruptionError(f"Record {key} is not a JSON object")
        return document

    def write(self, key: str, document: dict[str, Any]) -> None:
        self.init_dir()
        path = self._path(key)
        tmp_path = f"{path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as handle:
            json.dump(document, handle, indent=2, ensure_ascii=False)
        os.replace(tmp_path, path)

    def keys(self) -> Iterable[str]:
        if not os.path.isdir(self._directory):
            return []
        return [
            name[: -len(SUFFIX)]
            for name in os.listdir(self._directory)
            if name.endswith(SUFFIX) and is_valid_storage_key(name[: -len(SUFFIX)])
        ]

    def delete(self, key: str) -> bool:
        if not self.exists(key):
            return False
        try:
            os.remove(self._path(key))
        except FileNotFoundError:
            return False
        return True

    def stat(self, key: str) -> Optional[StoredRecordInfo]:
        if not self.exists(key):
            return None
        try:
            stats = os.stat(self._path(key))
        except FileNotFoundError:
            return None
        return StoredRecordInfo(
            modified_at=datetime.fromtimestamp(stats.st_mtime, tz=timezone.utc),
            size_bytes=stats.st_size,
        )
