"""Redis-backed key-value store.

All keys are namespaced under a configurable prefix (default ``fx-checker-``)
so multiple journals can share a single Redis instance.

Uses the synchronous ``redis`` client: every store operation completes
before the next one starts.
"""

from __future__ import annotations

import logging

import redis

from chance_journal.core.errors import PersistenceError

logger = logging.getLogger(__name__)


class RedisKeyValueStore:
    """Key-value port on top of Redis strings.

    Args:
        redis_url: Redis connection URL (e.g. ``redis://localhost:6379/0``).
        prefix: Key namespace prefix.
        client: Pre-built client, mainly for tests.  When given,
            *redis_url* is ignored.
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379/0",
        *,
        prefix: str = "fx-checker-",
        client: redis.Redis | None = None,
    ) -> None:
        self._url = redis_url
        self._prefix = prefix
        self._client = client

    @property
    def redis(self) -> redis.Redis:
        """Return the client, connecting lazily on first use."""
        if self._client is None:
            self._client = redis.Redis.from_url(self._url, decode_responses=False)
            logger.info("Redis client created: %s", self._url.split("@")[-1])
        return self._client

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def get(self, key: str) -> str | None:
        try:
            raw = self.redis.get(self._key(key))
        except redis.RedisError as exc:
            raise PersistenceError(key, str(exc)) from exc
        if raw is None:
            return None
        if isinstance(raw, bytes):
            try:
                return raw.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise PersistenceError(key, "value is not valid UTF-8") from exc
        return raw

    def set(self, key: str, value: str) -> None:
        try:
            self.redis.set(self._key(key), value.encode("utf-8"))
        except redis.RedisError as exc:
            raise PersistenceError(key, str(exc)) from exc
        logger.debug("Set %s (%d bytes)", self._key(key), len(value))

    def remove(self, key: str) -> None:
        try:
            self.redis.delete(self._key(key))
        except redis.RedisError as exc:
            raise PersistenceError(key, str(exc)) from exc

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
