"""In-memory TTL cache for scored route lists.

Entries are keyed by a request fingerprint. An entry is valid while
``now - fetched_at_ms < ttl_ms``; expired entries are dropped on read and
by the periodic sweep. When full, the oldest entry by fetch time is evicted
before a new key is inserted.
"""

import hashlib
import json
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


def _monotonic_ms() -> float:
    return time.monotonic() * 1000


@dataclass
class CacheEntry:
    """A cached payload with its fetch time and TTL."""

    payload: Any
    fetched_at_ms: float
    ttl_ms: float

    def is_valid(self, now_ms: float) -> bool:
        return now_ms - self.fetched_at_ms < self.ttl_ms


def request_fingerprint(
    from_token_id: str,
    to_token_id: str,
    amount_base_units: int,
    chain_id: int,
    flags: Optional[dict] = None,
) -> str:
    """Derive a deterministic cache key from the normalized request.

    Semantically identical requests (same tokens, base-unit amount, chain
    and routing flags) produce the same key regardless of flag order.
    """
    normalized_flags = {
        k: (str(v).lower() if v is not None else None)
        for k, v in sorted((flags or {}).items())
    }
    raw = json.dumps(
        [from_token_id.lower(), to_token_id.lower(), str(amount_base_units), chain_id, normalized_flags],
        sort_keys=True,
        separators=(",", ":"),
    )
    digest = hashlib.sha256(raw.encode()).hexdigest()[:32]
    return f"routes:{digest}"


class QuoteCache:
    """Process-wide quote cache.

    Not a durability layer: a restart clears it. All mutations hold an
    internal lock so concurrent aggregation calls can share one instance.
    """

    def __init__(
        self,
        max_entries: int = 1000,
        default_ttl_ms: float = 30_000,
        clock: Callable[[], float] = _monotonic_ms,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self.default_ttl_ms = default_ttl_ms
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._expirations = 0

    def get(self, fingerprint: str) -> Optional[Any]:
        """Get a cached payload, or None on miss (absent or expired)."""
        with self._lock:
            entry = self._entries.get(fingerprint)
            if entry is None:
                self._misses += 1
                return None

            if not entry.is_valid(self._clock()):
                del self._entries[fingerprint]
                self._expirations += 1
                self._misses += 1
                return None

            self._hits += 1
            return entry.payload

    def set(self, fingerprint: str, payload: Any, ttl_ms: Optional[float] = None) -> None:
        """Store a payload, evicting the oldest entry when full."""
        ttl_ms = self.default_ttl_ms if ttl_ms is None else ttl_ms
        with self._lock:
            now = self._clock()
            if fingerprint not in self._entries:
                while len(self._entries) >= self.max_entries:
                    self._evict_oldest()
            self._entries[fingerprint] = CacheEntry(payload=payload, fetched_at_ms=now, ttl_ms=ttl_ms)

    def invalidate(self, fingerprint: str) -> None:
        """Remove a single entry if present."""
        with self._lock:
            self._entries.pop(fingerprint, None)

    def sweep(self) -> int:
        """Remove all expired entries. Returns the number removed."""
        with self._lock:
            now = self._clock()
            expired = [key for key, entry in self._entries.items() if not entry.is_valid(now)]
            for key in expired:
                del self._entries[key]
            self._expirations += len(expired)

        if expired:
            logger.debug(f"Cache sweep removed {len(expired)} expired entries")
        return len(expired)

    def clear(self) -> None:
        """Drop every entry."""
        with self._lock:
            self._entries.clear()

    def stats(self) -> dict:
        """Get cache statistics."""
        with self._lock:
            lookups = self._hits + self._misses
            return {
                "entries": len(self._entries),
                "max_entries": self.max_entries,
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": self._hits / lookups if lookups else 0.0,
                "evictions": self._evictions,
                "expirations": self._expirations,
            }

    def _evict_oldest(self) -> None:
        oldest_key = min(self._entries, key=lambda k: self._entries[k].fetched_at_ms)
        del self._entries[oldest_key]
        self._evictions += 1
        logger.debug(f"Cache full ({self.max_entries}), evicted {oldest_key}")

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, fingerprint: str) -> bool:
        with self._lock:
            entry = self._entries.get(fingerprint)
            return entry is not None and entry.is_valid(self._clock())
