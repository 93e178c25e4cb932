"""
Per-provider politeness: a concurrency cap plus a token bucket.

Limits are keyed by provider, not by source: the rendering service or the
host being fetched for content, and one shared key for the text extraction
provider that every source calls. Several sources on one host share a
budget, and all sources share the extraction budget.
"""

import asyncio
import time
from contextlib import asynccontextmanager
from typing import Callable, Dict, Optional

from event_radar.shared.utils.configs import pipeline_configs

EXTRACTION_PROVIDER = "llm"


class TokenBucket:
    """
    Classic token bucket: `capacity` tokens, refilled at `rate` per second.

    `acquire` waits until a whole token is available and takes it.
    """

    def __init__(
        self,
        rate: float,
        capacity: int,
        clock: Callable[[], float] = time.monotonic,
    ):
        if rate <= 0:
            raise ValueError("rate must be positive")
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.rate = rate
        self.capacity = capacity
        self.tokens = float(capacity)
        self._clock = clock
        self._updated = clock()
        self._lock = asyncio.Lock()

    def _refill(self):
        now = self._clock()
        elapsed = max(0.0, now - self._updated)
        self.tokens = min(self.capacity, self.tokens + elapsed * self.rate)
        self._updated = now

    def try_acquire(self) -> bool:
        self._refill()
        if self.tokens >= 1:
            self.tokens -= 1
            return True
        return False

    async def acquire(self):
        async with self._lock:
            while not self.try_acquire():
                await asyncio.sleep((1 - self.tokens) / self.rate)


class ProviderLimiter:
    """Hands out one semaphore and one token bucket per provider."""

    def __init__(
        self,
        concurrency: Optional[int] = None,
        rate: Optional[float] = None,
        burst: Optional[int] = None,
    ):
        self.concurrency = concurrency or pipeline_configs["provider_concurrency"]
        self.rate = rate or pipeline_configs["provider_rate_per_second"]
        self.burst = burst or pipeline_configs["provider_burst"]
        self._semaphores: Dict[str, asyncio.Semaphore] = {}
        self._buckets: Dict[str, TokenBucket] = {}

    def semaphore(self, provider: str) -> asyncio.Semaphore:
        if provider not in self._semaphores:
            self._semaphores[provider] = asyncio.Semaphore(self.concurrency)
        return self._semaphores[provider]

    def bucket(self, provider: str) -> TokenBucket:
        if provider not in self._buckets:
            self._buckets[provider] = TokenBucket(self.rate, self.burst)
        return self._buckets[provider]

    @asynccontextmanager
    async def slot(self, provider: str):
        """Hold a concurrency slot for `provider` after taking one token."""
        async with self.semaphore(provider):
            await self.bucket(provider).acquire()
            yield
