# ============================================================================
# src/mediguide/chat/cache.py
# ============================================================================
"""
Medicine chat response cache.

Answers are kept for `ttl_seconds` and never served afterwards. When the
cache is full, expired answers are dropped first, then the answer stored
earliest; reading an answer does not extend its life. The cache is built
by whoever builds MedicineChatService and passed in.
"""

import hashlib
import logging
import threading
import time
from collections import OrderedDict
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    value: Any
    expires_at: float
    served: int = 0

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    writes: int = 0
    evictions: int = 0
    expirations: int = 0

    @property
    def hit_rate(self) -> float:
        lookups = self.hits + self.misses
        return self.hits / lookups if lookups else 0.0

    def as_dict(self) -> Dict[str, Any]:
        return {**asdict(self), "hit_rate": self.hit_rate}


class ResponseCache:
    """
    Thread-safe TTL store for chat answers.

    Keys are hashed, so long prompts cost a fixed amount of memory. `clock`
    defaults to time.monotonic and can be replaced in tests.
    """

    def __init__(
        self,
        ttl_seconds: float = 600,
        max_entries: int = 256,
        clock: Callable[[], float] = time.monotonic,
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")

        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()
        self.stats = CacheStats()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, key: str, default: Any = None) -> Any:
        digest = _digest(key)
        with self._lock:
            entry = self._entries.get(digest)
            if entry is not None and entry.is_expired(self._clock()):
                del self._entries[digest]
                self.stats.expirations += 1
                entry = None

            if entry is None:
                self.stats.misses += 1
                return default

            entry.served += 1
            self.stats.hits += 1
            return entry.value

    def set(self, key: str, value: Any) -> None:
        digest = _digest(key)
        with self._lock:
            now = self._clock()
            # a rewrite moves the key to the back and restarts its TTL
            self._entries.pop(digest, None)
            if len(self._entries) >= self.max_entries:
                self._drop_expired(now)
            while len(self._entries) >= self.max_entries:
                self._entries.popitem(last=False)
                self.stats.evictions += 1

            self._entries[digest] = CacheEntry(value=value, expires_at=now + self.ttl_seconds)
            self.stats.writes += 1

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(_digest(key), None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
        logger.info("Chat cache cleared")

    def cleanup_expired(self) -> int:
        """Drop every expired answer; returns how many were dropped."""
        with self._lock:
            removed = self._drop_expired(self._clock())
        if removed:
            logger.debug(f"Dropped {removed} expired chat answers")
        return removed

    def get_statistics(self) -> Dict[str, Any]:
        with self._lock:
            return {
                **self.stats.as_dict(),
                "entry_count": len(self._entries),
                "max_entries": self.max_entries,
                "ttl_seconds": self.ttl_seconds,
            }

    def _drop_expired(self, now: float) -> int:
        expired = [digest for digest, entry in self._entries.items() if entry.is_expired(now)]
        for digest in expired:
            del self._entries[digest]
        self.stats.expirations += len(expired)
        return len(expired)


def _digest(key: str) -> str:
    return hashlib.sha256(key.encode("utf-8")).hexdigest()
