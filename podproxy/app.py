"""
Secure passthrough proxy for print-on-demand vendor APIs.

Responsibilities:
  - Inject vendor bearer tokens so browsers and scripts never hold them
  - Passthrough of any method under /api/printful/* and /api/printify/*
  - Per-IP fixed-window rate limiting, applied before any route runs
  - In-memory ring log of recent requests and failures (/api/logs/recent)
  - Structured JSON logging (structlog) and Prometheus metrics (/metrics)
  - Health and credential-presence endpoints; presence is reported as
    booleans only, never the token values
"""

import json
import re
import time
import uuid
from contextlib import asynccontextmanager
from typing import Any

import httpx
import structlog
from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from slowapi.util import get_remote_address

from podproxy import metrics
from podproxy.config import Settings, settings as default_settings
from podproxy.errors import InvalidJSONBody, PayloadTooLarge, ProxyError, RateLimited
from podproxy.logging_config import configure_logging
from podproxy.passthrough import (
    BODYLESS_METHODS,
    PassthroughEngine,
    ProxyResponse,
    Structured,
    build_http_client,
)
from podproxy.rate_limiter import FixedWindowRateLimiter
from podproxy.ring_log import RingLog
from podproxy.vendors import VendorRegistry, default_vendors

configure_logging()
log = structlog.get_logger(__name__)

PASSTHROUGH_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
    "X-DNS-Prefetch-Control": "off",
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
}

LEADING_INT = re.compile(r"\s*[+-]?\d+")

# Paths served without rate limiting or a ring-log entry
UNMETERED_PATHS = {"/metrics"}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def error_response(exc: ProxyError) -> JSONResponse:
    headers = None
    if isinstance(exc, RateLimited):
        headers = {"Retry-After": str(exc.retry_after)}
    return JSONResponse(exc.to_dict(), status_code=exc.status_code, headers=headers)


def to_response(result: ProxyResponse) -> Response:
    if isinstance(result.body, Structured):
        return JSONResponse(result.body.value, status_code=result.status)
    return PlainTextResponse(result.body.text, status_code=result.status)


def int_param(raw: str | None, default: int) -> int:
    """Leading-integer parse, like JavaScript's parseInt: "5abc" -> 5."""
    match = LEADING_INT.match(raw or "")
    return int(match.group(0)) if match else default


def client_key(request: Request) -> str:
    return get_remote_address(request)


async def read_json_body(request: Request, max_bytes: int) -> Any:
    """Inbound JSON payload, or None when the request has no JSON body."""
    declared = request.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > max_bytes:
        raise PayloadTooLarge()

    raw = await request.body()
    if len(raw) > max_bytes:
        raise PayloadTooLarge()

    content_type = request.headers.get("content-type", "").lower()
    if not raw or "json" not in content_type:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        raise InvalidJSONBody() from None


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------
def create_app(
    settings: Settings = default_settings,
    *,
    registry: VendorRegistry | None = None,
    ring_log: RingLog | None = None,
    limiter: FixedWindowRateLimiter | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> FastAPI:
    if registry is None:
        registry = VendorRegistry(default_vendors(settings))
    if ring_log is None:
        ring_log = RingLog(settings.log_capacity)
    if limiter is None:
        limiter = FixedWindowRateLimiter(
            settings.rate_limit_per_minute,
            settings.rate_limit_window_seconds,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owns_client = app.state.http_client is None
        if owns_client:
            app.state.http_client = build_http_client(settings)
            app.state.engine = PassthroughEngine(app.state.http_client, registry, ring_log)
        ring_log.append("info", f"Secure proxy running on port {settings.port}")

        yield

        if owns_client:
            await app.state.http_client.aclose()
        log.info("proxy_stopped")

    app = FastAPI(
        title="POD Vendor Proxy",
        version="0.1.0",
        docs_url=None,
        redoc_url=None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.registry = registry
    app.state.ring_log = ring_log
    app.state.limiter = limiter
    app.state.http_client = http_client
    app.state.engine = (
        PassthroughEngine(http_client, registry, ring_log) if http_client is not None else None
    )

    @app.exception_handler(ProxyError)
    async def proxy_error_handler(request: Request, exc: ProxyError):
        return error_response(exc)

    # -----------------------------------------------------------------------
    # Middleware: rate limit, then record the request in the ring log
    # (innermost; registered first)
    # -----------------------------------------------------------------------
    @app.middleware("http")
    async def rate_limit_middleware(request: Request, call_next):
        path = request.url.path
        if path in UNMETERED_PATHS:
            return await call_next(request)

        key = client_key(request)
        if not await limiter.admit(key):
            metrics.RATE_LIMITED.inc()
            return error_response(RateLimited(await limiter.retry_after(key)))

        # path only: query strings, headers and bodies can carry secrets
        ring_log.append("req", f"{request.method} {path}")
        return await call_next(request)

    # -----------------------------------------------------------------------
    # Middleware: default security headers
    # -----------------------------------------------------------------------
    @app.middleware("http")
    async def security_headers_middleware(request: Request, call_next):
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response

    # -----------------------------------------------------------------------
    # Middleware: request-id injection
    # -----------------------------------------------------------------------
    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            client_ip=client_key(request),
        )
        response = await call_next(request)
        response.headers["x-request-id"] = request_id
        return response

    # Outermost, so preflight requests are answered before rate limiting
    app.add_middleware(
        CORSMiddleware,
        allow_origin_regex=".*",
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -----------------------------------------------------------------------
    # Health / diagnostics
    # -----------------------------------------------------------------------
    @app.get("/api/health")
    async def health():
        return {"ok": True, "ts": int(time.time() * 1000)}

    @app.get("/api/logs/recent")
    async def logs_recent(request: Request):
        params = request.query_params
        page = ring_log.recent(
            limit=int_param(params.get("limit"), 50),
            offset=int_param(params.get("offset"), 0),
        )
        return page.to_dict()

    @app.get("/api/debug/env")
    async def debug_env():
        return registry.presence_flags()

    @app.get("/metrics", include_in_schema=False)
    async def prometheus_metrics():
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # -----------------------------------------------------------------------
    # Vendor passthrough
    # -----------------------------------------------------------------------
    @app.api_route("/api/{prefix}/{remainder:path}", methods=PASSTHROUGH_METHODS)
    async def passthrough(prefix: str, remainder: str, request: Request) -> Response:
        vendor = registry.resolve(prefix)
        if vendor is None:
            raise HTTPException(status_code=404, detail="Not Found")

        body = None
        if request.method.upper() not in BODYLESS_METHODS:
            body = await read_json_body(request, settings.max_body_bytes)

        result = await request.app.state.engine.forward(
            vendor,
            request.method,
            remainder,
            body,
            query=request.url.query,
        )
        return to_response(result)

    return app


app = create_app()
