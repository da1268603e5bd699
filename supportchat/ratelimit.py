import math
import time
from dataclasses import dataclass
from typing import Dict, Optional

from limits import RateLimitItemPerSecond
from limits.storage import Storage, storage_from_string
from limits.strategies import FixedWindowRateLimiter


@dataclass
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_after: float  # seconds until the current window closes


class RateLimiter:
    """Fixed-window request counter keyed by client.

    Counts live in the ``limits`` storage named by ``storage_uri``:
    ``memory://`` is per process, ``redis://host:6379`` is shared by every
    worker pointed at the same server.
    """

    def __init__(
        self,
        limit: int,
        window: float,
        storage_uri: str = "memory://",
        storage: Optional[Storage] = None,
    ):
        self.limit = limit
        self.window = max(1, math.ceil(window))
        self.storage = storage or storage_from_string(storage_uri)
        self._strategy = FixedWindowRateLimiter(self.storage)
        self._item = RateLimitItemPerSecond(limit, self.window)

    def hit(self, key: str) -> RateLimitResult:
        allowed = self._strategy.hit(self._item, "api", key)
        stats = self._strategy.get_window_stats(self._item, "api", key)
        return RateLimitResult(
            allowed=allowed,
            limit=self.limit,
            remaining=max(stats.remaining, 0),
            reset_after=max(stats.reset_time - time.time(), 0.0),
        )

    def reset(self):
        self.storage.reset()

    def headers(self, result: RateLimitResult) -> Dict[str, str]:
        return {
            "RateLimit-Limit": str(result.limit),
            "RateLimit-Remaining": str(result.remaining),
            "RateLimit-Reset": str(math.ceil(result.reset_after)),
        }
