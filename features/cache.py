"""
In-memory TTL cache shared by the portfolio pipeline
Entries expire lazily: a read past the TTL evicts and misses.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    value: Any
    stored_at: float

    def is_expired(self, ttl: float, now: float) -> bool:
        return (now - self.stored_at) > ttl


class PortfolioCache:
    """TTL cache with hit/miss stats (no background sweep)"""

    def __init__(
        self,
        ttl: float = 300,
        name: str = 'cache',
        clock: Callable[[], float] = time.time
    ):
        self.ttl = ttl
        self.name = name
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Optional[Any]:
        """Get cached value if not expired"""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None

            if entry.is_expired(self.ttl, self._clock()):
                del self._entries[key]
                self.misses += 1
                logger.debug(f"{self.name}: expired {key[:16]}...")
                return None

            self.hits += 1
            return entry.value

    def set(self, key: str, value: Any):
        """Set cache value"""
        with self._lock:
            self._entries[key] = CacheEntry(value, self._clock())
        logger.debug(f"{self.name}: set {key[:16]}...")

    def clear(self):
        with self._lock:
            self._entries.clear()

    def __contains__(self, key: str) -> bool:
        # Raw membership; does not apply the TTL
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get_stats(self) -> Dict:
        """Get cache statistics"""
        total = self.hits + self.misses
        hit_rate = (self.hits / total * 100) if total > 0 else 0
        return {
            'size': len(self),
            'hits': self.hits,
            'misses': self.misses,
            'hit_rate': round(hit_rate, 1)
        }
