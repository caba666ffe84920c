"""
LRU cache for AI assistant responses.

Entries expire after a TTL; a hit refreshes the entry's age.
"""
import hashlib
import json
import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Dict, Optional

from permaculture_planner.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_ENTRIES = 100
DEFAULT_TTL_SECONDS = 60 * 60


def generate_cache_key(query: str, context_hash: str, screenshot_hash: Optional[str] = None) -> str:
    parts = [query, context_hash, screenshot_hash or "no-screenshot"]
    return hashlib.sha256("|".join(parts).encode("utf-8")).hexdigest()


def hash_context(context: Any) -> str:
    serialized = json.dumps(context, sort_keys=True, default=str)
    return hashlib.md5(serialized.encode("utf-8")).hexdigest()


class ResponseCache:
    def __init__(
        self,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._entries: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Optional[str]:
        """Return the cached response text, or None on a miss or expired entry."""
        with self._lock:
            entry = self._entries.get(key)
            now = self.clock()
            if entry is not None and now - entry["touched_at"] > self.ttl_seconds:
                del self._entries[key]
                entry = None
            if entry is None:
                self.misses += 1
                return None
            entry["touched_at"] = now
            self._entries.move_to_end(key)
            self.hits += 1
        logger.debug("Cache hit for %s", key[:8])
        return entry["response"]

    def set(self, key: str, response: str, model: str) -> None:
        with self._lock:
            now = self.clock()
            self._entries[key] = {"response": response, "model": model, "timestamp": time.time(), "touched_at": now}
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)
        logger.debug("Cached response %s", key[:8])

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0
        logger.info("Response cache cleared")

    def stats(self) -> Dict[str, Any]:
        total = self.hits + self.misses
        return {
            "size": len(self._entries),
            "max": self.max_entries,
            "hit_rate": self.hits / total if total else 0,
        }


response_cache = ResponseCache()
