"""
Fixed-window rate limiter keyed by caller (client IP).

Backed by the ``limits`` engine that slowapi drives: a fixed-window strategy
over in-process memory storage. A key's window opens with its first request
and lasts ``window_seconds``; requests inside it are admitted while the
counter is within quota. Storage expiry discards finished windows.

Known imprecision: counters reset at window boundaries, so a caller can send
a full quota at the end of one window and another full quota at the start of
the next. This is not a sliding window or leaky bucket.
"""

import math
import time

from limits import RateLimitItemPerSecond
from limits.aio.storage import MemoryStorage
from limits.aio.strategies import FixedWindowRateLimiter as _FixedWindowStrategy


class FixedWindowRateLimiter:
    def __init__(self, quota: int, window_seconds: int = 60, storage: MemoryStorage | None = None):
        if quota < 1:
            raise ValueError("quota must be at least 1")
        self.quota = quota
        self.window_seconds = int(window_seconds)
        self.item = RateLimitItemPerSecond(quota, self.window_seconds)
        self.storage = storage if storage is not None else MemoryStorage()
        self._strategy = _FixedWindowStrategy(self.storage)

    async def admit(self, key: str) -> bool:
        """Count one request for ``key``; return False once it is over quota.

        The increment and compare run under the storage's per-key lock.
        """
        return await self._strategy.hit(self.item, key)

    async def retry_after(self, key: str) -> int:
        """Whole seconds until ``key``'s current window closes (0 if none open)."""
        stats = await self._strategy.get_window_stats(self.item, key)
        return max(0, math.ceil(stats.reset_time - time.time()))
