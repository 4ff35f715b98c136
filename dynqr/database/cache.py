"""Redis cache for short code resolution."""

import json
import logging
from typing import Any, Dict, Optional

import redis.asyncio as redis

from .models import QRCode

_FAILED = object()


class RedisCache:
    """Redis cache of the fields needed to resolve a short code.

    Failures are logged and treated as misses; the record store stays the
    source of truth.
    """

    def __init__(
        self,
        redis_url: Optional[str] = None,
        ttl_seconds: int = 3600,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize Redis cache.

        Args:
            redis_url: Redis connection URL (e.g., redis://localhost:6379/0)
            ttl_seconds: Default TTL for cached items
            logger: Optional logger instance
        """
        self.redis_url = redis_url
        self.ttl_seconds = ttl_seconds
        self.logger = logger or logging.getLogger(__name__)
        self.enabled = redis_url is not None
        self.client: Optional[redis.Redis] = None

        if redis_url:
            self.logger.info(f"Redis cache enabled with TTL={ttl_seconds}s")

    async def connect(self) -> None:
        """Connect to Redis."""
        if not self.enabled:
            return

        try:
            self.client = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
            await self.client.ping()
            self.logger.info("Connected to Redis")
        except Exception as e:
            self.logger.error(f"Failed to connect to Redis: {e}")
            self.enabled = False

    async def _call(self, operation: str, default: Any, *args: Any) -> Any:
        """Run one client command; any failure counts as a miss."""
        if not self.enabled or self.client is None:
            return default
        try:
            return await getattr(self.client, operation)(*args)
        except Exception as e:
            self.logger.error(f"Cache {operation} error: {e}")
            return default

    async def get(self, key: str) -> Optional[str]:
        return await self._call("get", None, key)

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> bool:
        stored = await self._call("setex", _FAILED, key, ttl or self.ttl_seconds, value)
        return stored is not _FAILED

    async def delete(self, key: str) -> bool:
        return (await self._call("delete", 0, key)) > 0

    async def ping(self) -> bool:
        return bool(await self._call("ping", False))

    async def close(self) -> None:
        """Close Redis connection."""
        if self.client:
            await self.client.aclose()
            self.logger.info("Redis connection closed")

    def get_cache_key(self, short_code: str) -> str:
        return f"dynqr:resolve:{short_code}"

    # Resolution entries

    @staticmethod
    def entry_for(record: QRCode) -> Dict[str, Any]:
        """Fields a resolution needs, as stored in the cache."""
        return {
            "id": record.id,
            "user_id": record.user_id,
            "destination_url": record.destination_url,
            "is_active": record.is_active,
        }

    @staticmethod
    def encode_entry(record: QRCode) -> str:
        return json.dumps(RedisCache.entry_for(record))

    @staticmethod
    def decode_entry(raw: str) -> Optional[Dict[str, Any]]:
        try:
            entry = json.loads(raw)
        except ValueError:
            return None
        fields = ("id", "user_id", "destination_url", "is_active")
        if not isinstance(entry, dict) or not set(fields) <= entry.keys():
            return None
        return {name: entry[name] for name in fields}

    async def get_entry(self, short_code: str) -> Optional[Dict[str, Any]]:
        raw = await self.get(self.get_cache_key(short_code))
        return self.decode_entry(raw) if raw else None

    async def set_entry(self, record: QRCode) -> bool:
        return await self.set(self.get_cache_key(record.short_code), self.encode_entry(record))

    async def invalidate(self, short_code: str) -> bool:
        return await self.delete(self.get_cache_key(short_code))
