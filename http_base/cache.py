"""
udi-http-co2-pg3x NodeServer/Plugin for EISY/Polisy

(C) 2025

http_base Cache

Tracks when a value was last fetched so repeated reads inside the cache
window can be answered without touching the network.
"""

# std libraries
import time

# external libraries
pass

# personal libraries
pass

INFINITE = -1


class Cache:
    """Freshness flag for the last queried value.

    cache_time is in milliseconds. 0 means every read queries, -1 means the
    value is queried once and then never again.
    """

    def __init__(self, cache_time=None, default_cache_time: int = 0):
        if cache_time is None:
            cache_time = default_cache_time
        self.cache_time = int(cache_time)
        self.last_queried = None


    def queried(self):
        """Marks the cached value as freshly fetched."""
        self.last_queried = time.monotonic()


    def is_infinite(self) -> bool:
        return self.cache_time == INFINITE


    def should_query(self) -> bool:
        """Returns True when the cached value is stale."""
        if self.last_queried is None:
            return True
        if self.is_infinite():
            return False
        elapsed_ms = (time.monotonic() - self.last_queried) * 1000
        return elapsed_ms >= self.cache_time
