"""Forward DNS resolution of the scanned host (A and AAAA)."""

import asyncio
import ipaddress
from typing import List

import dns.exception
import dns.resolver

from logger import get_logger
from models import IpAddresses

logger = get_logger(__name__)


async def _resolve(hostname: str, rdtype: str) -> List[str]:
    def _query():
        answers = dns.resolver.resolve(hostname, rdtype)
        return [r.to_text() for r in answers]
    try:
        return await asyncio.get_running_loop().run_in_executor(None, _query)
    except dns.exception.DNSException as e:
        # One family failing must not fail the other
        logger.warning("DNS resolution failed", hostname=hostname, rdtype=rdtype, error=type(e).__name__)
        return []


def classify_addresses(addresses: List[str]) -> IpAddresses:
    """Deduplicate and split addresses by family, keeping first-seen order."""
    ipv4, ipv6 = [], []
    for raw in addresses:
        try:
            ip = ipaddress.ip_address(raw)
        except ValueError:
            continue
        bucket = ipv4 if ip.version == 4 else ipv6
        if str(ip) not in bucket:
            bucket.append(str(ip))
    return IpAddresses(ipv4=ipv4, ipv6=ipv6)


async def resolve_addresses(hostname: str) -> IpAddresses:
    v4, v6 = await asyncio.gather(_resolve(hostname, "A"), _resolve(hostname, "AAAA"))
    return classify_addresses(v4 + v6)
