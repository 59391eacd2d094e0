"""
Utility modules for Cheerboard.

This package contains shared utilities used across the application:
- logging_config: Named loggers (api, services, store, cache, jobs)
- cache: In-process TTL cache with pattern invalidation
"""

from cheerboard.utils.cache import MemoryCache, utc_now

__all__ = [
    "MemoryCache",
    "utc_now",
]
