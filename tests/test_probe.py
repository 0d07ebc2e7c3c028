"""Tests for the outbound header fetch against a local aiohttp server."""

import asyncio

import pytest
from aiohttp import web
from aiohttp import test_utils
from starlette.responses import JSONResponse

from errors import ProbeError
from models import ScanRecord, ScanResult
from probe import fetch_headers, header_text


async def _handler(request: web.Request) -> web.Response:
    resp = web.Response(text="ok", headers={"X-Frame-Options": "DENY", "X-Seen-UA": request.headers["User-Agent"]})
    resp.headers.add("Set-Cookie", "a=1")
    resp.headers.add("Set-Cookie", "b=2")
    return resp


@pytest.mark.asyncio
async def test_captures_headers_and_sends_user_agent():
    app = web.Application()
    app.router.add_get("/", _handler)
    async with test_utils.TestServer(app) as server:
        headers = await fetch_headers(str(server.make_url("/")), "site-scanner@test")

    assert headers["X-Frame-Options"] == "DENY"
    assert headers["X-Seen-UA"] == "site-scanner@test"
    assert headers["Set-Cookie"] == "a=1, b=2"


@pytest.mark.asyncio
async def test_follows_redirects():
    async def redirect(request):
        raise web.HTTPFound("/final")

    app = web.Application()
    app.router.add_get("/", redirect)
    app.router.add_get("/final", _handler)
    async with test_utils.TestServer(app) as server:
        headers = await fetch_headers(str(server.make_url("/")), "site-scanner@test")
    assert headers["X-Frame-Options"] == "DENY"


@pytest.mark.asyncio
async def test_unreachable_site_raises_probe_error():
    with pytest.raises(ProbeError):
        await fetch_headers("http://127.0.0.1:1/", "site-scanner@test")


async def _latin1_server(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
    await reader.readuntil(b"\r\n\r\n")
    writer.write(
        b"HTTP/1.1 200 OK\r\n"
        b"Server: caf\xe9\r\n"
        b"X-Frame-Options: DENY\r\n"
        b"Content-Length: 2\r\n"
        b"Connection: close\r\n\r\nok"
    )
    await writer.drain()
    writer.close()


@pytest.mark.asyncio
async def test_latin1_header_values_are_json_safe():
    server = await asyncio.start_server(_latin1_server, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    async with server:
        headers = await fetch_headers(f"http://127.0.0.1:{port}/", "site-scanner@test")

    assert headers["Server"] == "café"
    assert headers["X-Frame-Options"] == "DENY"
    record = ScanRecord(query="http://example.com", hostname="example.com", raw_headers=headers)
    resp = JSONResponse(content=ScanResult(cached=False, record=record).to_response())
    assert "café" in resp.body.decode("utf-8")


def test_header_text_leaves_valid_text_alone():
    assert header_text("café") == "café"
    assert header_text("caf\udce9") == "café"
