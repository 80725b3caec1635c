"""Request rate limiting: slowapi for per-IP limits, the limits package for per-key limits."""
import math
import time

from limits import parse
from limits.storage import MemoryStorage
from limits.strategies import FixedWindowRateLimiter
from slowapi import Limiter
from slowapi.util import get_remote_address

from bib.config import settings

limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])


class KeyedLimit:
    """A fixed-window limit such as "4/hour" counted per key (e.g. an email)."""

    def __init__(self, limit: str, namespace: str):
        self.item = parse(limit)
        self.namespace = namespace
        self._storage = MemoryStorage()
        self._strategy = FixedWindowRateLimiter(self._storage)

    def hit(self, key: str) -> bool:
        """Count one hit; False once the window is exhausted."""
        return self._strategy.hit(self.item, self.namespace, key)

    def test(self, key: str) -> bool:
        """Would a hit be allowed right now? Does not count."""
        return self._strategy.test(self.item, self.namespace, key)

    def retry_after(self, key: str) -> int:
        reset_time, _ = self._strategy.get_window_stats(self.item, self.namespace, key)
        return max(1, math.ceil(reset_time - time.time()))

    def reset(self) -> None:
        self._storage.reset()
