"""Scan orchestration: validate, reuse a fresh-enough scan or probe the site again."""

import asyncio
from datetime import datetime, timezone
from typing import Optional, Tuple
from urllib.parse import urlparse

import pydantic

from checks import dns_records, http_headers, providers
from context import ScanContext
from errors import ProbeError, RateLimitError, ValidationError
from freshness import needs_fresh_probe
from grading import grade
from logger import get_logger
from models import ScanRecord, ScanResult
from probe import fetch_headers, header_text

logger = get_logger(__name__)


def validate_query(query: str) -> Tuple[str, str]:
    """Return the normalised query and its hostname, or raise ValidationError."""
    query = (query or "").strip().lower()
    if not query.startswith(("http://", "https://")):
        raise ValidationError("The URL must begin with http:// or https://")
    try:
        hostname = urlparse(query).hostname
    except ValueError:
        hostname = None
    if not hostname:
        raise ValidationError("Invalid URL")
    parts = hostname.split(".")
    if len(parts) < 2 or len(parts[1]) < 2:
        raise ValidationError("The URL must end with a TLD")
    return query, hostname


def remove_empty(obj):
    """Drop None values, recursing into nested dicts."""
    if isinstance(obj, dict):
        return {k: remove_empty(v) for k, v in obj.items() if v is not None}
    return obj


def _now() -> datetime:
    return datetime.now(timezone.utc)


async def _latest_record(context: ScanContext, hostname: str) -> Optional[ScanRecord]:
    try:
        event = await context.event_log.query_latest(hostname)
    except Exception as e:
        logger.warning("Event log lookup failed, probing fresh", hostname=hostname, error=str(e))
        return None
    if not event:
        return None
    event = remove_empty(event)
    if isinstance(event.get("raw_headers"), dict):
        event["raw_headers"] = {
            header_text(k): header_text(v) if isinstance(v, str) else v for k, v in event["raw_headers"].items()
        }
    if "timestamp" not in event:
        return None
    try:
        return ScanRecord.model_validate(event)
    except pydantic.ValidationError as e:
        logger.warning("Ignoring unreadable cached scan", hostname=hostname, errors=e.error_count())
        return None


async def probe(query: str, hostname: str, context: ScanContext) -> ScanRecord:
    """Fetch headers and resolve addresses, then grade the captured headers."""
    raw_headers, ip_address = await asyncio.gather(
        fetch_headers(query, context.user_agent, timeout=context.probe_timeout),
        dns_records.resolve_addresses(hostname),
    )
    report = http_headers.run_all(raw_headers, context.rule_mode)
    return ScanRecord(
        timestamp=_now(),
        query=query,
        hostname=hostname,
        raw_headers=raw_headers,
        ip_address=ip_address,
        checks={"headers": report.summary()},
        info=providers.classify(raw_headers),
        grade=grade(report),
    )


async def scan(query: str, client_identity: str, force: bool, context: ScanContext) -> ScanResult:
    query, hostname = validate_query(query)
    log = logger.bind(hostname=hostname, ip_address=client_identity)

    context.ingest_in_background({
        "event_type": "query",
        "timestamp": _now().isoformat(),
        "query": query,
        "hostname": hostname,
    })

    previous = None if force else await _latest_record(context, hostname)
    previous_at = previous.timestamp if previous else None

    if not needs_fresh_probe(previous_at, force, _now()):
        log.info("Serving cached scan", scanned_at=previous_at.isoformat())
        return ScanResult(cached=True, record=previous)

    if not context.rate_limiter.try_acquire(client_identity):
        log.info("Fresh scan refused, client is cooling down")
        raise RateLimitError(client_identity, context.rate_limiter.cooldown_seconds)

    log.info("Probing site", force=force, stale=previous is not None)
    try:
        record = await probe(query, hostname, context)
    except ProbeError as e:
        log.warning("Probe failed", error=e.message)
        raise

    context.ingest_in_background(record.model_dump(mode="json"))
    log.info("Scan complete", grade=record.grade.value)
    return ScanResult(cached=False, record=record)
