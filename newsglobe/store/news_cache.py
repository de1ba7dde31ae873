"""
In-memory, TTL-bound cache of processed story collections.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from newsglobe.models import GeolocatedStory
from newsglobe.utils.config import settings

logger = logging.getLogger(__name__)

GLOBAL_KEY = "global"


def countries_cache_key(country_codes: List[str]) -> str:
    """Cache key for a country-scoped query."""
    return f"countries:{','.join(country_codes)}"


@dataclass
class CacheEntry:
    """
    Cached collection with the clock reading at which it was stored.
    """
    key: str
    data: List[GeolocatedStory]
    timestamp: float


class NewsCache:
    """
    Keyed story cache. Entries older than the TTL are never served.
    """

    def __init__(self, ttl_minutes: float = 10, clock: Callable[[], float] = time.monotonic):
        """
        Initialize the cache.

        Args:
            ttl_minutes: Entry time-to-live
            clock: Seconds source, injectable for tests
        """
        self.ttl = ttl_minutes * 60
        self.clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def get(self, key: str = GLOBAL_KEY) -> Optional[List[GeolocatedStory]]:
        """
        Get cached stories if still valid. Expired entries are evicted.

        Args:
            key: Cache key

        Returns:
            Stored stories or None
        """
        entry = self._entries.get(key)
        if entry is None:
            return None

        age = self.clock() - entry.timestamp
        if age > self.ttl:
            del self._entries[key]
            return None

        logger.info(f'Cache hit for "{key}" (age: {round(age)}s)')
        return entry.data

    def set(self, key: str, data: List[GeolocatedStory]) -> None:
        """Store stories under a key, replacing any existing entry."""
        self._entries[key] = CacheEntry(key=key, data=data, timestamp=self.clock())
        logger.info(f'Cached {len(data)} stories for "{key}"')

    def clear(self) -> None:
        """Clear all entries."""
        self._entries.clear()
        logger.info("Cache cleared")

    def clear_expired(self) -> int:
        """
        Remove expired entries.

        Returns:
            Number of entries removed
        """
        now = self.clock()
        expired = [
            key for key, entry in self._entries.items()
            if now - entry.timestamp > self.ttl
        ]
        for key in expired:
            del self._entries[key]

        if expired:
            logger.info(f"Cleared {len(expired)} expired cache entries")
        return len(expired)

    def stats(self) -> Dict[str, int]:
        """
        Get cache statistics.

        Returns:
            Entry count, total cached stories and the oldest entry age in seconds
        """
        now = self.clock()
        total_stories = 0
        oldest_age = 0.0

        for entry in self._entries.values():
            total_stories += len(entry.data)
            oldest_age = max(oldest_age, now - entry.timestamp)

        return {
            "entries": len(self._entries),
            "total_stories": total_stories,
            "oldest_age": round(oldest_age),
        }

    def __len__(self) -> int:
        return len(self._entries)


# Global cache instance
news_cache: Optional[NewsCache] = None


def get_news_cache() -> NewsCache:
    """
    Get the process-wide cache instance.

    Returns:
        News cache
    """
    global news_cache
    if news_cache is None:
        news_cache = NewsCache(ttl_minutes=settings.CACHE_TTL_MINUTES)
    return news_cache
