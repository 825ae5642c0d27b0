"""
Cache module
Provides Redis-based caching with TTL for AI extraction answers and run snapshots
"""

from .config import CacheConfig
from .manager import CacheManager

__all__ = [
    'CacheManager',
    'CacheConfig'
]
