"""Append-only event log for scan results and query events.

Events are plain dicts carrying at least ``event_type``, ``hostname`` and an
ISO-8601 ``timestamp``. Backends never mutate or delete what they store.
"""

import asyncio
import json
import os
from collections import Counter
from datetime import datetime, timezone
from typing import Dict, List, Optional, Protocol, runtime_checkable

import pydantic

from errors import PersistenceError
from logger import get_logger

logger = get_logger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)
_DATETIME = pydantic.TypeAdapter(datetime)


@runtime_checkable
class EventLog(Protocol):
    async def ingest(self, event: dict) -> None:
        ...

    async def query_latest(self, hostname: str) -> Optional[dict]:
        """Most recent ``result`` event for the hostname, or None."""
        ...

    async def query_recent(self, event_type: str, limit: int = 100) -> List[dict]:
        """Events of one type, newest first."""
        ...

    async def count(self, event_type: str) -> int:
        ...

    async def close(self) -> None:
        ...


def event_time(event: dict) -> datetime:
    """Parsed event timestamp; naive values are UTC, missing or unreadable sort oldest."""
    value = event.get("timestamp")
    if not value:
        return _EPOCH
    try:
        parsed = _DATETIME.validate_python(value)
    except pydantic.ValidationError:
        return _EPOCH
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed


def _newest_first(events: List[dict]) -> List[dict]:
    return sorted(events, key=event_time, reverse=True)


def _latest_result(events: List[dict], hostname: str) -> Optional[dict]:
    matches = [e for e in events if e.get("event_type") == "result" and e.get("hostname") == hostname]
    if not matches:
        return None
    return _newest_first(matches)[0]


class MemoryEventLog:
    """Process-local log. Lost on restart."""

    def __init__(self):
        self.events: List[dict] = []

    async def ingest(self, event: dict) -> None:
        self.events.append(dict(event))

    async def query_latest(self, hostname: str) -> Optional[dict]:
        return _latest_result(self.events, hostname)

    async def query_recent(self, event_type: str, limit: int = 100) -> List[dict]:
        return _newest_first([e for e in self.events if e.get("event_type") == event_type])[:limit]

    async def count(self, event_type: str) -> int:
        return sum(1 for e in self.events if e.get("event_type") == event_type)

    async def close(self) -> None:
        pass


class JsonFileEventLog:
    """JSON-lines file, one event per line.

    The file is parsed once, on first read. After that, lookups are served
    from an in-memory index that ingest keeps current. File access runs off
    the event loop.
    """

    def __init__(self, path: str):
        self.path = path
        self._lock = asyncio.Lock()
        self._loaded = False
        self._by_type: Dict[str, List[dict]] = {}
        self._latest: Dict[str, dict] = {}
        self._counts: Counter = Counter()

    def _ensure_data_dir(self):
        os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)

    def _append(self, event: dict):
        self._ensure_data_dir()
        with open(self.path, "a") as f:
            f.write(json.dumps(event, separators=(",", ":")) + "\n")

    def _load(self) -> List[dict]:
        if not os.path.exists(self.path):
            return []
        events = []
        with open(self.path, "r") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    events.append(json.loads(line))
                except json.JSONDecodeError:
                    logger.warning("Skipping corrupt event log line", path=self.path)
        return events

    def _index(self, event: dict) -> None:
        event_type = event.get("event_type")
        self._counts[event_type] += 1
        self._by_type.setdefault(event_type, []).append(event)
        hostname = event.get("hostname")
        if event_type == "result" and hostname:
            current = self._latest.get(hostname)
            if current is None or event_time(event) >= event_time(current):
                self._latest[hostname] = event

    async def _ensure_loaded(self) -> None:
        if self._loaded:
            return
        async with self._lock:
            if self._loaded:
                return
            try:
                events = await asyncio.to_thread(self._load)
            except OSError as e:
                raise PersistenceError(f"Could not read event log: {e}") from e
            for event in events:
                self._index(event)
            self._loaded = True

    async def ingest(self, event: dict) -> None:
        try:
            async with self._lock:
                await asyncio.to_thread(self._append, event)
                if self._loaded:
                    self._index(dict(event))
        except OSError as e:
            raise PersistenceError(f"Could not write event log: {e}") from e

    async def query_latest(self, hostname: str) -> Optional[dict]:
        await self._ensure_loaded()
        return self._latest.get(hostname)

    async def query_recent(self, event_type: str, limit: int = 100) -> List[dict]:
        await self._ensure_loaded()
        return _newest_first(self._by_type.get(event_type, []))[:limit]

    async def count(self, event_type: str) -> int:
        await self._ensure_loaded()
        return self._counts[event_type]

    async def close(self) -> None:
        # Wait for an in-flight append to finish
        async with self._lock:
            pass


def create_event_log(backend: str, path: str = "") -> EventLog:
    if backend == "memory":
        return MemoryEventLog()
    if backend == "file":
        return JsonFileEventLog(path)
    raise ValueError(f"Unknown event log backend: {backend!r} (expected 'memory' or 'file')")
