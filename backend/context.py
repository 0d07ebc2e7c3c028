"""Process-wide state shared by every request handler.

Created once at startup and closed at shutdown; handlers receive it by
reference instead of reaching for module globals.
"""

import asyncio
import time
from typing import List, Optional, Set

import config
from checks.http_headers import RuleMode
from event_log import EventLog, create_event_log
from logger import get_logger
from rate_limiter import RateLimiter

logger = get_logger(__name__)


class StatsCache:
    """Query/scan totals and recent grades, refreshed at most every ``refresh_seconds``."""

    def __init__(self, event_log: EventLog, refresh_seconds: float = 10):
        self.event_log = event_log
        self.refresh_seconds = refresh_seconds
        self.total_queries = 0
        self.total_scans = 0
        self.recent_scans: List[dict] = []
        self._last_refresh: Optional[float] = None
        self._lock = asyncio.Lock()

    def is_stale(self) -> bool:
        return self._last_refresh is None or time.monotonic() - self._last_refresh >= self.refresh_seconds

    async def refresh(self) -> None:
        async with self._lock:
            if not self.is_stale():
                return
            self._last_refresh = time.monotonic()
            try:
                self.total_queries = await self.event_log.count("query")
                self.total_scans = await self.event_log.count("result")
                results = await self.event_log.query_recent("result", limit=100)
            except Exception as e:
                # Keep serving the previous numbers
                logger.warning("Stats refresh failed", error=str(e))
                return
            seen = set()
            recent = []
            for event in results:
                hostname, grade = event.get("hostname"), event.get("grade")
                if not hostname or not grade or hostname in seen:
                    continue
                seen.add(hostname)
                recent.append({"hostname": hostname, "grade": grade})
                if len(recent) == 10:
                    break
            self.recent_scans = recent

    async def snapshot(self) -> dict:
        if self.is_stale():
            await self.refresh()
        return {
            "queries": self.total_queries,
            "scans": self.total_scans,
            "recent_scans": list(self.recent_scans),
        }


class ScanContext:
    def __init__(
        self,
        event_log: EventLog,
        rate_limiter: Optional[RateLimiter] = None,
        rule_mode=RuleMode.STRICT,
        user_agent: str = config.USER_AGENT,
        probe_timeout: Optional[float] = None,
        stats_refresh_seconds: float = config.STATS_REFRESH_SECONDS,
    ):
        self.event_log = event_log
        self.rate_limiter = rate_limiter or RateLimiter()
        self.rule_mode = RuleMode(rule_mode)
        self.user_agent = user_agent
        self.probe_timeout = probe_timeout
        self.stats = StatsCache(event_log, refresh_seconds=stats_refresh_seconds)
        self._background: Set[asyncio.Task] = set()

    @classmethod
    def from_config(cls) -> "ScanContext":
        return cls(
            event_log=create_event_log(config.EVENT_LOG_BACKEND, config.EVENT_LOG_PATH),
            rate_limiter=RateLimiter(config.RATE_LIMIT_COOLDOWN_SECONDS),
            rule_mode=config.RULE_MODE,
            probe_timeout=config.PROBE_TIMEOUT_SECONDS,
        )

    def ingest_in_background(self, event: dict) -> asyncio.Task:
        """Fire-and-forget ingest. Failures are logged, never raised to the caller."""
        task = asyncio.create_task(self._ingest(event))
        # Hold a reference so the task outlives the request that spawned it
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def _ingest(self, event: dict) -> None:
        try:
            await self.event_log.ingest(event)
        except Exception as e:
            logger.error(
                "Event log ingest failed",
                event_type=event.get("event_type"),
                hostname=event.get("hostname"),
                error=str(e),
            )

    async def drain(self) -> None:
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

    async def close(self) -> None:
        await self.drain()
        await self.event_log.close()
        self.rate_limiter.reset()
