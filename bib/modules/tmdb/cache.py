"""
Process-wide TTL cache for TMDB responses.

Entries are keyed by the canonical request (path plus sorted params, api key excluded)
and expire ttl_seconds after they were stored. The clock is injected so expiry can be
tested without sleeping.
"""

from bib.config import settings
from typing import Any, Callable, Dict, Optional, Tuple
import time


class TTLCache:
    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic, max_entries: int = 2000):
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self.max_entries = max_entries
        self._entries: Dict[str, Tuple[float, Any]] = {}

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self.clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    def set(self, key: str, value: Any) -> None:
        if len(self._entries) >= self.max_entries:
            self._prune()
        self._entries[key] = (self.clock() + self.ttl_seconds, value)

    def _prune(self) -> None:
        now = self.clock()
        for key in [k for k, (expires_at, _) in self._entries.items() if expires_at <= now]:
            del self._entries[key]
        # Still full: drop the entries closest to expiry
        overflow = len(self._entries) - self.max_entries + 1
        if overflow > 0:
            for key, _ in sorted(self._entries.items(), key=lambda item: item[1][0])[:overflow]:
                del self._entries[key]

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


_cache: Optional[TTLCache] = None


def get_tmdb_cache() -> TTLCache:
    """Shared cache, created on first use with the configured TTL"""
    global _cache
    if _cache is None:
        _cache = TTLCache(settings.tmdb_cache_ttl_seconds)
    return _cache


def set_tmdb_cache(cache: Optional[TTLCache]) -> None:
    """Swap the shared cache (None resets it)"""
    global _cache
    _cache = cache
