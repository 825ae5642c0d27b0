"""
Redis cache manager for the scraping pipeline
Shares AI extraction answers and run snapshots across workers
"""
import json
import logging
from typing import Any, Optional, Dict

import redis

from .config import CacheConfig

logger = logging.getLogger(__name__)


class CacheManager:
    """Redis-based cache manager with TTL handling; disabled without a client"""

    def __init__(self, redis_client: Optional[redis.Redis] = None):
        """Initialize cache manager with Redis client"""
        self.redis_client = redis_client
        self.config = CacheConfig()
        self.enabled = redis_client is not None

        if not self.enabled:
            logger.warning("Cache manager initialized without Redis client - caching disabled")

    def _generate_key(self, key_type: str, identifier: str) -> str:
        """Generate cache key with proper prefix"""
        prefix = self.config.get_key_prefix(key_type)
        return f"{prefix}{identifier}"

    def _serialize_data(self, data: Any) -> str:
        """Serialize data for Redis storage"""
        if isinstance(data, (dict, list)):
            return json.dumps(data, default=str)
        return str(data)

    def _deserialize_data(self, data: str) -> Any:
        """Deserialize data from Redis"""
        try:
            return json.loads(data)
        except (json.JSONDecodeError, TypeError):
            return data

    def set(self, key_type: str, identifier: str, data: Any, ttl: Optional[int] = None) -> bool:
        """Set cache value with TTL"""
        if not self.enabled:
            return False

        try:
            cache_key = self._generate_key(key_type, identifier)
            serialized_data = self._serialize_data(data)

            if ttl is None:
                ttl = self.config.get_ttl_for_key_type(key_type)

            result = self.redis_client.setex(cache_key, ttl, serialized_data)
            logger.debug(f"Cache SET: {cache_key} (TTL: {ttl}s)")
            return bool(result)
        except redis.RedisError as e:
            logger.warning(f"Cache SET error for {key_type}:{identifier}: {e}")
            return False

    def get(self, key_type: str, identifier: str) -> Optional[Any]:
        """Get cache value"""
        if not self.enabled:
            return None

        try:
            cache_key = self._generate_key(key_type, identifier)
            data = self.redis_client.get(cache_key)

            if data is None:
                logger.debug(f"Cache MISS: {cache_key}")
                return None

            logger.debug(f"Cache HIT: {cache_key}")
            return self._deserialize_data(data)
        except redis.RedisError as e:
            logger.warning(f"Cache GET error for {key_type}:{identifier}: {e}")
            return None

    # AI extraction answers
    def get_ai_extraction(self, prompt_hash: str) -> Optional[str]:
        """Cached completion text for a prompt hash"""
        value = self.get("ai_extraction", prompt_hash)
        return None if value is None else str(value)

    def set_ai_extraction(self, prompt_hash: str, answer: str, ttl: Optional[int] = None) -> bool:
        # Stored raw so numeric-looking answers come back as text
        if not self.enabled:
            return False

        try:
            cache_key = self._generate_key("ai_extraction", prompt_hash)
            if ttl is None:
                ttl = self.config.get_ttl_for_key_type("ai_extraction")
            return bool(self.redis_client.setex(cache_key, ttl, answer))
        except redis.RedisError as e:
            logger.warning(f"Cache SET error for ai_extraction:{prompt_hash}: {e}")
            return False

    # Run snapshots
    def cache_scraping_run(self, job_id: str, snapshot: Dict[str, Any], ttl: Optional[int] = None) -> bool:
        """Cache a serialized job snapshot"""
        return self.set("scraping_run", job_id, snapshot, ttl)

    def get_cached_scraping_run(self, job_id: str) -> Optional[Dict[str, Any]]:
        """Get a cached job snapshot"""
        value = self.get("scraping_run", job_id)
        return value if isinstance(value, dict) else None

    def health_check(self) -> Dict[str, Any]:
        """Check cache health and return status"""
        if not self.enabled:
            return {"status": "disabled", "redis_available": False}

        try:
            self.redis_client.ping()
            info = self.redis_client.info()
            return {
                "status": "healthy",
                "redis_available": True,
                "connected_clients": info.get("connected_clients", 0),
                "used_memory_human": info.get("used_memory_human", "unknown"),
            }
        except redis.RedisError as e:
            logger.error(f"Cache health check failed: {e}")
            return {
                "status": "error",
                "redis_available": False,
                "error": str(e)
            }
