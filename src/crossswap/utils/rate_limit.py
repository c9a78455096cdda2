"""Sliding-window rate limiter keyed by client id.

Each client keeps the timestamps of its requests inside the trailing
window. A request is allowed while fewer than ``quota`` timestamps remain
in-window; otherwise the caller is told when the oldest one expires.
"""

import logging
import math
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Optional

logger = logging.getLogger(__name__)

SHARED_BUCKET = "__shared__"


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of a rate limit check."""

    allowed: bool
    retry_after_seconds: Optional[int] = None
    remaining: int = 0


class RateLimiter:
    """Per-client sliding window counter.

    Never raises: malformed client ids fall into one shared bucket so a
    bad id limits more strictly instead of bypassing the limit.
    """

    def __init__(
        self,
        quota: int = 15,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        if quota < 1:
            raise ValueError("quota must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.quota = quota
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, deque] = {}
        self._lock = threading.Lock()
        self._rejections = 0

    @staticmethod
    def _bucket(client_id) -> str:
        if not isinstance(client_id, str) or not client_id.strip():
            return SHARED_BUCKET
        return client_id.strip()

    def check_and_record(self, client_id) -> RateLimitDecision:
        """Check the client's quota and record the request if allowed."""
        bucket = self._bucket(client_id)

        with self._lock:
            now = self._clock()
            window = self._windows.setdefault(bucket, deque())
            window_start = now - self.window_seconds
            while window and window[0] <= window_start:
                window.popleft()

            if len(window) >= self.quota:
                oldest = window[0]
                retry_after = max(1, math.ceil(oldest + self.window_seconds - now))
                self._rejections += 1
                logger.warning(
                    f"Rate limit exceeded for {bucket}: {len(window)}/{self.quota} "
                    f"in {self.window_seconds:.0f}s, retry after {retry_after}s"
                )
                return RateLimitDecision(allowed=False, retry_after_seconds=retry_after, remaining=0)

            window.append(now)
            return RateLimitDecision(allowed=True, remaining=self.quota - len(window))

    def prune(self) -> int:
        """Drop expired timestamps and empty clients. Returns clients removed."""
        with self._lock:
            window_start = self._clock() - self.window_seconds
            removed = 0
            for bucket in list(self._windows):
                window = self._windows[bucket]
                while window and window[0] <= window_start:
                    window.popleft()
                if not window:
                    del self._windows[bucket]
                    removed += 1

        if removed:
            logger.debug(f"Rate limiter pruned {removed} idle clients")
        return removed

    def stats(self) -> dict:
        """Get limiter statistics."""
        with self._lock:
            return {
                "clients": len(self._windows),
                "quota": self.quota,
                "window_seconds": self.window_seconds,
                "rejections": self._rejections,
            }


def client_id_from_headers(
    forwarded_for: Optional[str],
    real_ip: Optional[str],
    user_agent: Optional[str],
    remote_host: Optional[str] = None,
) -> str:
    """Derive a coarse client id from network origin plus a user-agent prefix."""
    origin = ""
    if forwarded_for:
        origin = forwarded_for.split(",")[0].strip()
    origin = origin or (real_ip or "").strip() or (remote_host or "").strip() or "default"
    agent = (user_agent or "")[:10]
    return f"{origin}_{agent}"
