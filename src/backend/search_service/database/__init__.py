"""Database package - Redis connection for the search result cache"""

from .redis_client import RedisManager, redis_manager, init_redis, get_redis_client, close_redis

__all__ = ["RedisManager", "redis_manager", "init_redis", "get_redis_client", "close_redis"]
