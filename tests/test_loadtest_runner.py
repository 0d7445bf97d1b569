import httpx

from loadtest.runner import RequestResult, single_request, summarize


def test_summarize_separates_rate_limited_from_errors():
    results = [
        RequestResult(label="health", start=0.0, end=0.1, status_code=200),
        RequestResult(label="health", start=0.5, end=0.7, status_code=200),
        RequestResult(label="printful_store", start=1.0, end=1.1, status_code=429),
        RequestResult(label="printful_store", start=1.5, end=2.0, status_code=500, error="HTTP 500"),
    ]
    summary = summarize(results)
    assert summary["total"] == 4
    assert summary["ok"] == 2
    assert summary["rate_limited"] == 1
    assert summary["errors"] == 1
    assert summary["wall"] == 2.0
    assert summary["statuses"][200] == 2
    assert set(summary["latency"]) == {50, 90, 95, 99}


def test_summarize_empty():
    assert summarize([]) == {}


async def test_single_request_records_status():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/health":
            return httpx.Response(200, json={"ok": True})
        return httpx.Response(429, json={"error": "rate_limited"})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://proxy") as client:
        ok = await single_request(client, "health")
        limited = await single_request(client, "printful_store")

    assert ok.ok and ok.status_code == 200
    assert limited.rate_limited and not limited.error and not limited.ok


async def test_single_request_connection_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused")

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://proxy") as client:
        result = await single_request(client, "health")

    assert result.error == "connection_error: refused"
    assert result.end >= result.start
