"""
In-memory TTL cache for agent results.
"""
import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_TTL_S = 3600.0


@dataclass
class CacheEntry:
    data: Any
    timestamp: float
    ttl_s: float

    def is_expired(self, now: float) -> bool:
        return now - self.timestamp > self.ttl_s


class AgentCache:
    """Process-local cache keyed by caller-chosen strings.

    Last write wins. Nothing is shared between processes; swap in an
    external key-value store behind the same methods to scale out.
    """

    def __init__(self, default_ttl_s: float = DEFAULT_TTL_S):
        self.default_ttl_s = default_ttl_s
        self._entries: Dict[str, CacheEntry] = {}

    def set(self, key: str, data: Any, ttl_s: Optional[float] = None) -> None:
        self._entries[key] = CacheEntry(
            data=data,
            timestamp=time.monotonic(),
            ttl_s=self.default_ttl_s if ttl_s is None else ttl_s,
        )

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(time.monotonic()):
            del self._entries[key]
            return None
        return entry.data

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def cleanup(self) -> int:
        """Drop expired entries and return how many were removed."""
        now = time.monotonic()
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("Evicted %d expired cache entries", len(expired))
        return len(expired)

    async def sweep(self, interval_s: float) -> None:
        """Run cleanup() every interval_s seconds until cancelled."""
        logger.info("Cache sweep started (every %.0fs)", interval_s)
        while True:
            await asyncio.sleep(interval_s)
            self.cleanup()

    def get_stats(self) -> Dict[str, Any]:
        keys: List[str] = list(self._entries)
        timestamps = [entry.timestamp for entry in self._entries.values()]
        return {
            "size": len(keys),
            "keys": keys,
            "oldest_entry": min(timestamps) if timestamps else None,
            "newest_entry": max(timestamps) if timestamps else None,
        }
