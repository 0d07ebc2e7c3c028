"""Shared fixtures: an in-memory event log, a scan context and a stubbed network probe."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import pytest

from context import ScanContext
from event_log import MemoryEventLog
from models import IpAddresses, ScanRecord
from rate_limiter import RateLimiter

SECURE_HEADERS = {
    "strict-transport-security": "max-age=31536000; includeSubDomains",
    "content-security-policy": "default-src 'self'",
    "x-frame-options": "DENY",
    "x-content-type-options": "nosniff",
    "referrer-policy": "strict-origin-when-cross-origin",
    "permissions-policy": "camera=(), microphone=()",
    "content-security-policy-report-only": "script-src 'self'",
    "x-xss-protection": "0",
    "expect-ct": 'max-age=86400, enforce, report-uri="https://example.com/ct"',
    "feature-policy": "camera 'none'",
    "public-key-pins": 'pin-sha256="base64=="; max-age=5184000',
    "content-encoding": "gzip",
    "cache-control": "public, max-age=600",
    "strict-transport-security-preload": "preload",
    "access-control-allow-origin": "https://example.com",
    "server": "nginx",
}

PARTIAL_HEADERS = {
    "strict-transport-security": "max-age=31536000; includeSubDomains",
    "x-frame-options": "DENY",
    "x-content-type-options": "nosniff",
}


@pytest.fixture
def secure_headers() -> dict:
    return dict(SECURE_HEADERS)


@pytest.fixture
def partial_headers() -> dict:
    return dict(PARTIAL_HEADERS)


@pytest.fixture
def event_log() -> MemoryEventLog:
    return MemoryEventLog()


@pytest.fixture
def context(event_log: MemoryEventLog) -> ScanContext:
    return ScanContext(event_log=event_log, rate_limiter=RateLimiter(10), stats_refresh_seconds=0)


@pytest.fixture
def fake_probe(partial_headers):
    """Replace the outbound fetch and DNS lookups; yields the fetch mock."""
    fetch = AsyncMock(return_value={"Server": "railway", **partial_headers})
    resolve = AsyncMock(return_value=IpAddresses(ipv4=["203.0.113.7"], ipv6=["2001:db8::7"]))
    with patch("scanner.fetch_headers", fetch), patch("checks.dns_records.resolve_addresses", resolve):
        yield fetch


def make_result_event(hostname: str = "example.com", age: timedelta = timedelta(days=1), **overrides) -> dict:
    record = ScanRecord(
        timestamp=datetime.now(timezone.utc) - age,
        query=f"https://{hostname}",
        hostname=hostname,
        raw_headers={"server": "nginx"},
        checks={"headers": {"server": "Pass"}},
        grade="B",
    )
    event = record.model_dump(mode="json")
    event.update(overrides)
    return event
