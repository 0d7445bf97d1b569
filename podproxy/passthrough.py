"""
Credential-injecting passthrough to a vendor REST API.

  - Builds the upstream URL by literal concatenation: ``base_url + "/" + path``
  - Sends only a fixed header set (bearer token + JSON content negotiation);
    inbound cookies and custom headers never leave the proxy
  - GET/HEAD carry no body; every other method sends the inbound JSON body,
    or ``{}`` when there is none
  - Reads the upstream body eagerly and returns it as parsed JSON when it
    parses, raw text otherwise
  - Upstream 4xx/5xx are relayed verbatim; only transport failures are
    turned into errors
"""

import json
import time
from dataclasses import dataclass
from typing import Any, Union

import httpx
import structlog

from podproxy import metrics
from podproxy.config import Settings
from podproxy.errors import MissingCredential, TransportFailure
from podproxy.ring_log import RingLog
from podproxy.vendors import VendorConfig, VendorRegistry

log = structlog.get_logger(__name__)

BODYLESS_METHODS = frozenset({"GET", "HEAD"})


@dataclass(frozen=True)
class Structured:
    value: Any


@dataclass(frozen=True)
class Raw:
    text: str


Body = Union[Structured, Raw]


@dataclass(frozen=True)
class ProxyResponse:
    status: int
    body: Body


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant {name}")


def parse_body(text: str) -> Body:
    # NaN/Infinity are not JSON and could not be re-rendered; relay them as text
    try:
        return Structured(json.loads(text, parse_constant=_reject_constant))
    except ValueError:
        return Raw(text)


def build_url(base_url: str, path: str, query: str = "") -> str:
    # No slash normalization: "/orders" becomes "<base>//orders", as before.
    url = f"{base_url}/{path}"
    if query:
        url = f"{url}?{query}"
    return url


def outbound_headers(token: str) -> dict[str, str]:
    return {
        "Authorization": f"Bearer {token}",
        "Content-Type": "application/json",
        "Accept": "application/json",
    }


def build_http_client(
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Shared upstream client. Redirects are followed so callers get the final response."""
    return httpx.AsyncClient(
        transport=transport,
        follow_redirects=True,
        timeout=httpx.Timeout(
            settings.request_timeout_seconds,
            connect=settings.connect_timeout_seconds,
        ),
        limits=httpx.Limits(
            max_connections=200,
            max_keepalive_connections=50,
            keepalive_expiry=30,
        ),
    )


class PassthroughEngine:
    def __init__(self, client: httpx.AsyncClient, registry: VendorRegistry, ring_log: RingLog):
        self.client = client
        self.registry = registry
        self.ring_log = ring_log

    async def forward(
        self,
        vendor: VendorConfig,
        method: str,
        path: str,
        body: Any = None,
        query: str = "",
    ) -> ProxyResponse:
        method = method.upper()
        token = self.registry.credential(vendor)
        if not token:
            metrics.MISSING_CREDENTIAL.labels(vendor.name).inc()
            metrics.REQUEST_COUNT.labels(method, vendor.name, "400").inc()
            log.info("credential_missing", vendor=vendor.name, token_env=vendor.token_env)
            raise MissingCredential(vendor.token_env)

        url = build_url(vendor.base_url, path, query)
        content = None
        if method not in BODYLESS_METHODS:
            content = json.dumps({} if body is None else body, separators=(",", ":"))

        start = time.monotonic()
        metrics.ACTIVE_REQUESTS.inc()
        try:
            resp = await self.client.request(
                method,
                url,
                headers=outbound_headers(token),
                content=content,
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            message = str(exc) or exc.__class__.__name__
            metrics.TRANSPORT_FAILURES.labels(vendor.name).inc()
            metrics.REQUEST_COUNT.labels(method, vendor.name, "500").inc()
            self.ring_log.append("error", f"{vendor.name} error: {message}")
            raise TransportFailure(vendor.name, message) from exc
        finally:
            metrics.ACTIVE_REQUESTS.dec()
            metrics.REQUEST_LATENCY.labels(vendor.name).observe(time.monotonic() - start)

        status = resp.status_code
        if status >= 400:
            metrics.UPSTREAM_ERRORS.labels(vendor.name, str(status)).inc()
            log.warning("upstream_error", vendor=vendor.name, status=status, path=path)

        metrics.REQUEST_COUNT.labels(method, vendor.name, str(status)).inc()
        log.info(
            "passthrough_complete",
            vendor=vendor.name,
            method=method,
            status=status,
            duration=round(time.monotonic() - start, 3),
        )
        return ProxyResponse(status=status, body=parse_body(resp.text))
