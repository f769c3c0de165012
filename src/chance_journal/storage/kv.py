"""Key-value storage port.

Every journal store persists its whole collection as one serialized
document under a single key.  The port is deliberately tiny::

    get(key) -> str | None
    set(key, value) -> None        # raises PersistenceError
    remove(key) -> None            # silent when absent

Adapters prepend a namespace prefix so several journals can share a backend.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

from chance_journal.core.enums import StorageBackend
from chance_journal.core.errors import ConfigError, PersistenceError

if TYPE_CHECKING:
    from chance_journal.core.config import Settings

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Synchronous string blob storage used by all stores."""

    def get(self, key: str) -> str | None:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def remove(self, key: str) -> None:
        ...


class InMemoryKeyValueStore:
    """Dict-backed store.

    Args:
        prefix: Key namespace prefix.
        quota_bytes: Optional total size limit across all values.  Writes
            that would exceed it fail with :class:`PersistenceError`, the
            same way a browser's storage quota does.
    """

    def __init__(self, *, prefix: str = "", quota_bytes: int | None = None) -> None:
        self._prefix = prefix
        self._quota = quota_bytes
        self._data: dict[str, str] = {}

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def get(self, key: str) -> str | None:
        return self._data.get(self._key(key))

    def set(self, key: str, value: str) -> None:
        full_key = self._key(key)
        if self._quota is not None:
            used = sum(
                len(v.encode("utf-8"))
                for k, v in self._data.items()
                if k != full_key
            )
            if used + len(value.encode("utf-8")) > self._quota:
                raise PersistenceError(key, "quota exceeded")
        self._data[full_key] = value

    def remove(self, key: str) -> None:
        self._data.pop(self._key(key), None)

    def keys(self) -> list[str]:
        """Stored keys without the prefix."""
        n = len(self._prefix)
        return sorted(k[n:] for k in self._data)


def open_kv_store(settings: Settings) -> KeyValueStore:
    """Build the adapter selected by ``settings.storage.backend``."""
    cfg = settings.storage
    backend = StorageBackend(cfg.backend)

    if backend == StorageBackend.MEMORY:
        return InMemoryKeyValueStore(prefix=cfg.key_prefix)

    if backend == StorageBackend.FILE:
        from .file_store import FileKeyValueStore

        return FileKeyValueStore(cfg.data_dir, prefix=cfg.key_prefix)

    if backend == StorageBackend.REDIS:
        from .redis_store import RedisKeyValueStore

        return RedisKeyValueStore(cfg.redis_url, prefix=cfg.key_prefix)

    raise ConfigError(f"Unsupported storage backend: {backend}")
