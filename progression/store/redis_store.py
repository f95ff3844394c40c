"""
Redis-backed progress store.

Provides async Redis operations with:
- Automatic JSON serialization/deserialization
- Connection pooling
- Store statistics
- Failures surfaced as StorageError (progress must never be reported
  as saved when the write did not happen)
"""

import json
import logging
from typing import Any, Optional

import redis.asyncio as redis

from progression.exceptions import StoreConnectionError, wrap_store_exception
from progression.store.base import ProgressStore

logger = logging.getLogger(__name__)


class RedisProgressStore(ProgressStore):
    """
    Async Redis progress store.

    Each logical record (progression:{id}, quests:{id}, ...) is one JSON
    string value under an optional key prefix.
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379/0",
        key_prefix: str = "",
        client: Optional[Any] = None,
    ):
        """
        Initialize Redis store.

        Args:
            redis_url: Redis connection URL
            key_prefix: Prepended to every key (namespacing shared instances)
            client: Pre-built redis client (skips connect())
        """
        self.redis_url = redis_url
        self.key_prefix = key_prefix
        self._client = client
        self._stats = {
            "reads": 0,
            "writes": 0,
            "errors": 0,
        }

    async def connect(self) -> None:
        """Establish Redis connection."""
        if self._client is not None:
            return

        client = redis.from_url(
            self.redis_url,
            encoding="utf-8",
            decode_responses=True,
            max_connections=10,
        )
        try:
            await client.ping()
        except Exception as e:
            self._stats["errors"] += 1
            raise wrap_store_exception(e, operation="connect")
        self._client = client
        logger.info(f"Redis progress store connected: {self.redis_url}")

    async def close(self) -> None:
        """Close Redis connection."""
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("Redis progress store closed")

    def _key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    def _require_client(self, operation: str, key: str):
        if self._client is None:
            raise StoreConnectionError(
                "Redis progress store used before connect()",
                key=key,
                operation=operation,
            )
        return self._client

    async def get(self, key: str) -> Optional[Any]:
        """
        Get value from Redis.

        Args:
            key: Record key

        Returns:
            Stored value (deserialized from JSON) or None if not found
        """
        client = self._require_client("get", key)
        try:
            raw = await client.get(self._key(key))
            self._stats["reads"] += 1
            if raw is None:
                logger.debug(f"Store MISS: {key}")
                return None
            logger.debug(f"Store HIT: {key}")
            return json.loads(raw)
        except Exception as e:
            self._stats["errors"] += 1
            raise wrap_store_exception(e, operation="get", key=key)

    async def put(self, key: str, value: Any) -> None:
        """
        Set value in Redis.

        Args:
            key: Record key
            value: JSON-compatible value
        """
        client = self._require_client("put", key)
        try:
            await client.set(self._key(key), json.dumps(value))
            self._stats["writes"] += 1
            logger.debug(f"Store PUT: {key}")
        except Exception as e:
            self._stats["errors"] += 1
            raise wrap_store_exception(e, operation="put", key=key)

    def get_stats(self) -> dict:
        """Read/write/error counters"""
        return dict(self._stats)
