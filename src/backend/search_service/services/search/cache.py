"""
Search Result Cache

Caches complete SearchResponses keyed by a digest of the processed query.

- Redis (setex with TTL) when a client is configured
- In-memory dict with expiry timestamps otherwise

Caching is best effort: read and write failures are logged and treated as
a miss, never surfaced to the caller.
"""

import hashlib
import json
import logging
import time
from typing import Any, Dict, Optional, Tuple

from redis.asyncio import Redis

from ...database.redis_client import RedisManager, redis_manager
from ...models.search import ProcessedQuery, SearchResponse

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300
DEFAULT_KEY_PREFIX = "search:"


class InMemoryResultStore:
    """Expiring key/value store used when Redis is unavailable or disabled"""

    def __init__(self):
        self._entries: Dict[str, Tuple[float, str]] = {}

    def get(self, key: str) -> Optional[str]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if expires_at <= time.monotonic():
            del self._entries[key]
            return None
        return value

    def set(self, key: str, value: str, ttl: int) -> None:
        self._entries[key] = (time.monotonic() + ttl, value)

    def clear(self) -> int:
        count = len(self._entries)
        self._entries.clear()
        return count

    def __len__(self) -> int:
        return len(self._entries)


class SearchResultCache:
    """
    Response cache for the search orchestrator.

    Two requests share a key when they have the same cleaned query, type,
    filters, options and course context.
    """

    def __init__(
        self,
        redis_client: Optional[Redis] = None,
        ttl: int = DEFAULT_TTL_SECONDS,
        prefix: str = DEFAULT_KEY_PREFIX
    ):
        """
        Initialize cache.

        Args:
            redis_client: Async Redis client (in-memory store is used if None)
            ttl: Entry lifetime in seconds
            prefix: Key prefix for Redis keys
        """
        self.redis = redis_client
        self.ttl = ttl
        self.prefix = prefix
        self._memory = InMemoryResultStore()

        logger.info(f"SearchResultCache initialized (backend: {self.backend_type}, ttl: {ttl}s)")

    @property
    def backend_type(self) -> str:
        return "redis" if self.redis is not None else "memory"

    @staticmethod
    def make_key(query: ProcessedQuery) -> str:
        """sha256 digest over the fields that decide a response"""
        material = {
            "query": query.cleaned_query,
            "type": query.strategy.value,
            "filters": query.filters,
            "options": query.options.model_dump(mode="json"),
            "course_id": query.context.course_id,
        }
        encoded = json.dumps(material, sort_keys=True, default=str)
        return hashlib.sha256(encoded.encode("utf-8")).hexdigest()

    def _full_key(self, query: ProcessedQuery) -> str:
        return f"{self.prefix}{self.make_key(query)}"

    async def get(self, query: ProcessedQuery) -> Optional[SearchResponse]:
        """
        Look up a cached response.

        Returns:
            Cached SearchResponse, or None on miss or cache failure
        """
        key = self._full_key(query)
        try:
            if self.redis is not None:
                payload = await self.redis.get(key)
            else:
                payload = self._memory.get(key)

            if payload is None:
                return None
            return SearchResponse.model_validate_json(payload)

        except Exception as e:
            logger.warning(f"Search cache read failed for {key}: {e}")
            return None

    async def set(self, query: ProcessedQuery, response: SearchResponse) -> None:
        """Store a response under the query's key"""
        key = self._full_key(query)
        try:
            payload = response.model_dump_json(by_alias=True)
            if self.redis is not None:
                await self.redis.setex(key, self.ttl, payload)
            else:
                self._memory.set(key, payload, self.ttl)
            logger.debug(f"Cached search response {response.search_id} under {key}")

        except Exception as e:
            logger.warning(f"Search cache write failed for {key}: {e}")

    async def clear(self) -> int:
        """
        Remove every cached response.

        Returns:
            Number of entries removed
        """
        if self.redis is None:
            return self._memory.clear()

        removed = 0
        try:
            async for key in self.redis.scan_iter(match=f"{self.prefix}*"):
                removed += await self.redis.delete(key)
        except Exception as e:
            logger.warning(f"Search cache clear failed: {e}")
        return removed


async def create_result_cache(
    cache_config: Dict[str, Any],
    manager: Optional[RedisManager] = None
) -> Optional[SearchResultCache]:
    """
    Build the result cache from the cache config section.

    Args:
        cache_config: Cache settings (enabled, search_ttl_seconds, key_prefix)
        manager: Redis connection manager (defaults to the global manager)

    Returns:
        None when caching is disabled; a Redis backed cache when the manager
        has caching enabled and connects; an in-memory cache otherwise
    """
    if not cache_config.get("enabled", True):
        logger.info("Search result caching disabled via CACHE_SEARCH_RESULTS=false")
        return None

    manager = manager or redis_manager
    ttl = cache_config.get("search_ttl_seconds", DEFAULT_TTL_SECONDS)
    prefix = cache_config.get("key_prefix", DEFAULT_KEY_PREFIX)

    if not manager.enable_caching:
        logger.info("Redis disabled via ENABLE_REDIS_CACHING=false, using in-memory result cache")
        return SearchResultCache(None, ttl=ttl, prefix=prefix)

    try:
        await manager.init_redis()
        logger.info("✓ Redis initialized")
        return SearchResultCache(manager.client, ttl=ttl, prefix=prefix)
    except Exception as e:
        logger.warning(f"Redis initialization failed: {e}. Using in-memory result cache.")
        return SearchResultCache(None, ttl=ttl, prefix=prefix)
