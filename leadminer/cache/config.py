"""
Cache configuration settings
"""
import os


class CacheConfig:
    """Configuration class for cache settings"""

    # Default TTL values (in seconds)
    DEFAULT_TTL = int(os.getenv("CACHE_DEFAULT_TTL", "3600"))  # 1 hour
    AI_EXTRACTION_TTL = int(os.getenv("AI_EXTRACTION_TTL", "86400"))  # 24 hours
    SCRAPING_RUN_TTL = int(os.getenv("SCRAPING_RUN_TTL", "86400"))  # 24 hours

    # Cache key prefixes
    AI_EXTRACTION_PREFIX = "ai_extraction:"
    SCRAPING_RUN_PREFIX = "scraping_run:"

    @classmethod
    def get_ttl_for_key_type(cls, key_type: str) -> int:
        """Get TTL based on key type"""
        ttl_map = {
            "ai_extraction": cls.AI_EXTRACTION_TTL,
            "scraping_run": cls.SCRAPING_RUN_TTL,
        }
        return ttl_map.get(key_type, cls.DEFAULT_TTL)

    @classmethod
    def get_key_prefix(cls, key_type: str) -> str:
        """Get key prefix based on type"""
        prefix_map = {
            "ai_extraction": cls.AI_EXTRACTION_PREFIX,
            "scraping_run": cls.SCRAPING_RUN_PREFIX,
        }
        return prefix_map.get(key_type, "")
