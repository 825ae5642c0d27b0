"""
Unit tests for Redis cache manager and the AI extraction cache
"""
import pytest
from unittest.mock import Mock
import redis
from leadminer.cache.manager import CacheManager
from leadminer.cache.config import CacheConfig
from leadminer.scraping.extraction.ai import AIExtractionCache


class TestCacheConfig:
    """Test cache configuration"""

    def test_default_ttl_values(self):
        """Test default TTL values are set correctly"""
        assert CacheConfig.DEFAULT_TTL == 3600
        assert CacheConfig.AI_EXTRACTION_TTL == 86400
        assert CacheConfig.SCRAPING_RUN_TTL == 86400

    def test_get_ttl_for_key_type(self):
        """Test TTL retrieval by key type"""
        assert CacheConfig.get_ttl_for_key_type("ai_extraction") == 86400
        assert CacheConfig.get_ttl_for_key_type("unknown") == 3600

    def test_get_key_prefix(self):
        """Test key prefix retrieval by type"""
        assert CacheConfig.get_key_prefix("ai_extraction") == "ai_extraction:"
        assert CacheConfig.get_key_prefix("scraping_run") == "scraping_run:"
        assert CacheConfig.get_key_prefix("unknown") == ""


class TestCacheManager:
    """Test cache manager functionality"""

    @pytest.fixture
    def mock_redis(self):
        """Mock Redis client"""
        mock_client = Mock()
        mock_client.ping.return_value = True
        mock_client.setex.return_value = True
        mock_client.get.return_value = None
        mock_client.delete.return_value = 1
        mock_client.info.return_value = {
            "connected_clients": 1,
            "used_memory_human": "1M",
        }
        return mock_client

    @pytest.fixture
    def cache_manager(self, mock_redis):
        """Cache manager with mock Redis"""
        return CacheManager(mock_redis)

    def test_disabled_without_client(self):
        """Test all operations are no-ops without Redis"""
        manager = CacheManager(None)
        assert manager.enabled is False
        assert manager.set("ai_extraction", "k", "v") is False
        assert manager.get("ai_extraction", "k") is None
        assert manager.get_ai_extraction("k") is None
        assert manager.health_check()["status"] == "disabled"

    def test_set_uses_prefix_and_ttl(self, cache_manager, mock_redis):
        """Test set generates prefixed key with the type's TTL"""
        assert cache_manager.set("scraping_run", "job-1", {"status": "completed"}) is True
        mock_redis.setex.assert_called_once_with("scraping_run:job-1", 86400, '{"status": "completed"}')

    def test_get_deserializes_json(self, cache_manager, mock_redis):
        """Test cached JSON comes back as data"""
        mock_redis.get.return_value = '{"status": "completed"}'
        assert cache_manager.get_cached_scraping_run("job-1") == {"status": "completed"}
        mock_redis.get.assert_called_with("scraping_run:job-1")

    def test_ai_extraction_round_trip_keeps_text(self, cache_manager, mock_redis):
        """Test numeric-looking answers are stored and returned as text"""
        cache_manager.set_ai_extraction("abc", "42")
        mock_redis.setex.assert_called_once_with("ai_extraction:abc", 86400, "42")

        mock_redis.get.return_value = "42"
        assert cache_manager.get_ai_extraction("abc") == "42"

    def test_redis_errors_do_not_raise(self, cache_manager, mock_redis):
        """Test Redis failures degrade to cache misses"""
        mock_redis.get.side_effect = redis.ConnectionError("down")
        mock_redis.setex.side_effect = redis.ConnectionError("down")

        assert cache_manager.get("ai_extraction", "k") is None
        assert cache_manager.set("ai_extraction", "k", "v") is False
        assert cache_manager.set_ai_extraction("k", "v") is False

    def test_health_check(self, cache_manager):
        """Test health check reports Redis info"""
        health = cache_manager.health_check()
        assert health["status"] == "healthy"
        assert health["redis_available"] is True


class TestAIExtractionCache:
    """Test the prompt-hash answer cache"""

    def test_memory_cache(self):
        """Test answers are kept in memory without Redis"""
        cache = AIExtractionCache()
        key = AIExtractionCache.key_for("prompt")

        assert cache.get(key) is None
        cache.set(key, "answer")
        assert cache.get(key) == "answer"
        assert len(cache) == 1

    def test_key_is_stable_hash(self):
        """Test identical prompts share a key"""
        assert AIExtractionCache.key_for("same") == AIExtractionCache.key_for("same")
        assert AIExtractionCache.key_for("same") != AIExtractionCache.key_for("other")

    def test_falls_back_to_redis(self):
        """Test a memory miss is answered from the shared cache"""
        redis_client = Mock()
        redis_client.get.return_value = "shared answer"
        cache = AIExtractionCache(CacheManager(redis_client))

        assert cache.get("k") == "shared answer"
        redis_client.get.assert_called_once_with("ai_extraction:k")

        # Second read is served from memory
        assert cache.get("k") == "shared answer"
        assert redis_client.get.call_count == 1


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
