"""Per-client cool-down on fresh probes.

Only fresh probes are gated. Serving an existing scan from the event log is
never rate limited.
"""

from limits import RateLimitItemPerSecond
from limits.storage import MemoryStorage
from limits.strategies import MovingWindowRateLimiter

from logger import get_logger

logger = get_logger(__name__)


class RateLimiter:
    """At most one fresh probe per client identity per cool-down window.

    The moving-window hit is a single locked check-and-set in the storage, so
    two concurrent attempts for the same identity cannot both succeed. Entries
    expire on the storage's own schedule; there is no early release.
    """

    def __init__(self, cooldown_seconds: int = 10):
        self.cooldown_seconds = cooldown_seconds
        self._item = RateLimitItemPerSecond(1, cooldown_seconds)
        self._storage = MemoryStorage()
        self._limiter = MovingWindowRateLimiter(self._storage)

    def try_acquire(self, identity: str) -> bool:
        allowed = self._limiter.hit(self._item, "probe", identity)
        if allowed:
            logger.info("Rate limiting", ip_address=identity, cooldown_seconds=self.cooldown_seconds)
        return allowed

    def is_throttled(self, identity: str) -> bool:
        return not self._limiter.test(self._item, "probe", identity)

    def reset(self) -> None:
        self._storage.reset()
