import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from podproxy.app import create_app
from podproxy.config import Settings
from podproxy.passthrough import PassthroughEngine, build_http_client
from podproxy.rate_limiter import FixedWindowRateLimiter
from podproxy.ring_log import RingLog
from podproxy.vendors import VendorRegistry, default_vendors

TOKENS = {
    "PRINTFUL_TOKEN": "pf-secret-token",
    "PRINTIFY_TOKEN": "pi-secret-token",
    "PRINTFUL_STORE_ID": "store-123",
    "PRINTIFY_SHOP_ID": "shop-456",
}

PRINTFUL_BASE = "https://api.printful.com"
PRINTIFY_BASE = "https://api.printify.com/v1"


class Upstream:
    """Stand-in vendor API: records every outbound request and answers with a canned reply."""

    def __init__(self):
        self.calls: list[httpx.Request] = []
        self.status = 200
        self.json = {"ok": True}
        self.text: str | None = None
        self.error: Exception | None = None
        self.redirects: dict[str, str] = {}

    def reply(self, status: int = 200, json=None, text: str | None = None) -> None:
        self.status = status
        self.json = json
        self.text = text

    def fail(self, error: Exception) -> None:
        self.error = error

    def redirect(self, path: str, location: str) -> None:
        self.redirects[path] = location

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        if self.error is not None:
            raise self.error
        if request.url.path in self.redirects:
            return httpx.Response(301, headers={"Location": self.redirects[request.url.path]})
        if self.text is not None:
            return httpx.Response(self.status, text=self.text)
        return httpx.Response(self.status, json=self.json)


@pytest.fixture
def test_settings():
    return Settings(
        PRINTFUL_BASE_URL=PRINTFUL_BASE,
        PRINTIFY_BASE_URL=PRINTIFY_BASE,
        MAX_BODY_BYTES=1024,
    )


@pytest.fixture
def upstream():
    return Upstream()


@pytest.fixture
def env():
    return dict(TOKENS)


@pytest.fixture
def ring_log():
    return RingLog()


@pytest.fixture
def registry(test_settings, env):
    return VendorRegistry(default_vendors(test_settings), env=env)


@pytest.fixture
def engine(test_settings, upstream, registry, ring_log):
    client = build_http_client(test_settings, transport=httpx.MockTransport(upstream))
    return PassthroughEngine(client, registry, ring_log)


@pytest.fixture
def make_client(test_settings, upstream, registry, ring_log):
    """Factory for an ASGI test client wired to the mocked upstream."""

    def _make(quota: int = 1000) -> AsyncClient:
        app = create_app(
            test_settings,
            registry=registry,
            ring_log=ring_log,
            limiter=FixedWindowRateLimiter(quota, 60),
            http_client=build_http_client(test_settings, transport=httpx.MockTransport(upstream)),
        )
        return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")

    return _make


@pytest.fixture
async def client(make_client):
    async with make_client() as c:
        yield c
