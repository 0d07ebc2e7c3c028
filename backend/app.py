"""Site Scanner - FastAPI service grading a site's HTTP security headers."""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, field_validator

import config
from context import ScanContext
from errors import RateLimitError, ScanError
from logger import configure_logging, get_logger
from scanner import scan

configure_logging(config.LOG_LEVEL, config.LOG_JSON)
logger = get_logger(__name__)


def client_identity(request: Request) -> str:
    """First X-Forwarded-For entry, else the peer address, else "unknown"."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


class ScanRequest(BaseModel):
    url: str
    force: bool = False

    @field_validator("url")
    @classmethod
    def strip_url(cls, v: str) -> str:
        return v.strip()


def _is_truthy(value: Optional[str]) -> bool:
    return bool(value) and value.lower() not in ("0", "false", "no", "off")


def create_app(context: Optional[ScanContext] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "context", None) is None:
            app.state.context = ScanContext.from_config()
        logger.info("Site scanner started", version=config.VERSION, rule_mode=app.state.context.rule_mode.value)
        yield
        await app.state.context.close()
        logger.info("Site scanner stopped")

    app = FastAPI(
        title="Site Scanner API",
        description="Grades a website's HTTP security headers and caches results for two weeks.",
        version=config.VERSION,
        lifespan=lifespan,
    )
    app.state.context = context

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.exception_handler(ScanError)
    async def scan_error_handler(request: Request, exc: ScanError):
        headers = {"Retry-After": str(exc.retry_after)} if isinstance(exc, RateLimitError) else None
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message}, headers=headers)

    async def _run_scan(request: Request, url: str, force: bool) -> dict:
        result = await scan(url, client_identity(request), force, request.app.state.context)
        return result.to_response()

    @app.get("/")
    async def root(request: Request, q: Optional[str] = None, force: Optional[str] = None):
        if not q:
            stats = await request.app.state.context.stats.snapshot()
            return {"status": "ok", "service": "Site Scanner API", "version": config.VERSION, "stats": stats}
        return await _run_scan(request, q, _is_truthy(force))

    @app.post("/scan")
    async def scan_endpoint(request: Request, body: ScanRequest):
        return await _run_scan(request, body.url, body.force)

    @app.get("/stats")
    async def stats(request: Request):
        return await request.app.state.context.stats.snapshot()

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    @app.get("/.well-known/health")
    async def well_known_health():
        return JSONResponse(
            content={"time": datetime.now(timezone.utc).isoformat(), "status": "pass"},
            media_type="application/health+json",
        )

    @app.get("/robots.txt", response_class=PlainTextResponse)
    async def robots():
        return "User-agent: *\nAllow: /"

    return app


app = create_app()


if __name__ == "__main__":
    import os

    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=int(os.environ.get("PORT", "3000")))
