"""Outbound fetch of the target site's response headers."""

import asyncio
from typing import Dict, Optional

import aiohttp

from errors import ProbeError


def header_text(value: str) -> str:
    """Re-decode header text that was not valid UTF-8 as Latin-1.

    aiohttp keeps undecodable bytes as lone surrogates, which cannot be
    serialised as JSON.
    """
    try:
        value.encode("utf-8")
    except UnicodeEncodeError:
        return value.encode("utf-8", "surrogateescape").decode("latin-1")
    return value


async def fetch_headers(url: str, user_agent: str, timeout: Optional[float] = None) -> Dict[str, str]:
    """GET the URL once and return every response header.

    Names keep the case the network layer returned. Repeated headers are
    joined with ", ". ``timeout=None`` leaves timing to the socket layer.
    """
    client_timeout = aiohttp.ClientTimeout(total=timeout)
    try:
        async with aiohttp.ClientSession(timeout=client_timeout) as session:
            async with session.get(url, allow_redirects=True, headers={"user-agent": user_agent}) as resp:
                headers: Dict[str, str] = {}
                lowered: Dict[str, str] = {}
                for name, value in resp.headers.items():
                    name, value = header_text(name), header_text(value)
                    key = lowered.setdefault(name.lower(), name)
                    headers[key] = f"{headers[key]}, {value}" if key in headers else value
                return headers
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        raise ProbeError(f"Could not reach target site: {type(e).__name__}: {e}") from e
