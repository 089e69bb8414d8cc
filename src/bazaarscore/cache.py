"""
bazaarscore/cache.py

Per-address read-through cache for participation scores.

Entries expire SCORE_CACHE_TTL_MS after their score's last_calculated time.
A write for an address evicts its entry rather than updating it, so the next
read recomputes from the ledger.

Each address also carries a generation number that every eviction bumps.
A reader takes the generation before it starts fetching and hands it back to
put(); if an eviction happened in between, the fetched value predates the
write and is dropped instead of being cached.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .config import SCORE_CACHE_TTL_MS
from .protocol.decay import now_ms
from .protocol.participation import ParticipationScore

logger = logging.getLogger("bazaarscore.cache")


@dataclass
class CacheStats:
    """Counters for cache activity."""
    hits: int = 0
    misses: int = 0
    expirations: int = 0
    evictions: int = 0
    stale_puts: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            'hits': self.hits,
            'misses': self.misses,
            'expirations': self.expirations,
            'evictions': self.evictions,
            'stale_puts': self.stale_puts,
        }


class ScoreCache:
    """
    Address -> ParticipationScore cache with a fixed freshness window.

    Usage:
        cache = ScoreCache()

        generation = cache.generation(address)
        score = cache.get(address)
        if score is None:
            score = await fetch_and_calculate(address)
            cache.put(address, score, generation)

        # After reporting activity for the address
        cache.evict(address)
    """

    def __init__(self, ttl_ms: int = SCORE_CACHE_TTL_MS):
        """
        Initialize the cache.

        Args:
            ttl_ms: Freshness window in milliseconds
        """
        self.ttl_ms = ttl_ms
        self._entries: Dict[str, ParticipationScore] = {}
        self._generations: Dict[str, int] = {}
        self._clears = 0
        self._stats = CacheStats()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, address: str) -> bool:
        return address in self._entries

    def generation(self, address: str) -> int:
        """Current eviction generation for an address."""
        with self._lock:
            return self._generation(address)

    def _generation(self, address: str) -> int:
        # Both counters only grow, so the sum changes on any evict or clear
        return self._generations.get(address, 0) + self._clears

    def get(self, address: str, now: Optional[int] = None) -> Optional[ParticipationScore]:
        """
        Get a fresh cached score.

        Returns:
            The cached score, or None on a miss or an expired entry
        """
        if now is None:
            now = now_ms()

        with self._lock:
            score = self._entries.get(address)
            if score is None:
                self._stats.misses += 1
                return None

            if now - score.last_calculated >= self.ttl_ms:
                del self._entries[address]
                self._stats.expirations += 1
                self._stats.misses += 1
                logger.debug(f"Cache expired: {address}")
                return None

            self._stats.hits += 1
            return score

    def put(
        self,
        address: str,
        score: ParticipationScore,
        generation: Optional[int] = None,
    ) -> bool:
        """
        Cache a freshly calculated score.

        Args:
            address: Wallet address
            score: Calculated score
            generation: Generation taken before the score was fetched;
                None stores unconditionally

        Returns:
            True if stored, False if an eviction made the score stale
        """
        with self._lock:
            current = self._generation(address)
            if generation is not None and generation != current:
                self._stats.stale_puts += 1
                logger.debug(
                    f"Dropping stale score for {address} "
                    f"(generation {generation} != {current})"
                )
                return False
            self._entries[address] = score
            return True

    def evict(self, address: str) -> None:
        """Drop an address's entry and invalidate any in-flight reads for it."""
        with self._lock:
            self._generations[address] = self._generations.get(address, 0) + 1
            if self._entries.pop(address, None) is not None:
                self._stats.evictions += 1

    def clear(self) -> None:
        """Drop every entry."""
        with self._lock:
            # Fold per-address generations into the clear counter so every
            # address still moves past any generation taken before the clear.
            self._clears += max(self._generations.values(), default=0) + 1
            self._generations.clear()
            self._entries.clear()
        logger.info("Score cache cleared")

    def stats(self) -> Dict[str, Any]:
        """Cache statistics."""
        with self._lock:
            data = self._stats.to_dict()
            data['size'] = len(self._entries)
            data['ttl_ms'] = self.ttl_ms
            return data
