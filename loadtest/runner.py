#!/usr/bin/env python3
"""
Load tester for the vendor proxy.

Usage:
    python3 loadtest/runner.py --url http://localhost:10000 \
        --concurrency 16 --duration 60

Output:
    Live progress via Rich, final report with P50/P95/P99 latency,
    requests/sec, status-code breakdown (429s from the rate limiter are
    counted separately from real errors) and per-route latency.

Note that the proxy limits per client IP, so a single runner host will be
throttled once it passes RATE_LIMIT_PER_MINUTE; use --routes health to
measure the dispatcher alone.
"""
import argparse
import asyncio
import random
import time
from collections import Counter
from dataclasses import dataclass

import httpx
import numpy as np
from rich.console import Console
from rich.live import Live
from rich.table import Table

console = Console()

# ---------------------------------------------------------------------------
# Route workload distribution
# ---------------------------------------------------------------------------
ROUTES = {
    # label: (method, path, weight)
    "health":         ("GET", "/api/health", 0.30),
    "logs":           ("GET", "/api/logs/recent?limit=20", 0.10),
    "debug_env":      ("GET", "/api/debug/env", 0.10),
    "printful_store": ("GET", "/api/printful/store", 0.25),
    "printify_shops": ("GET", "/api/printify/shops.json", 0.25),
}


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------
@dataclass
class RequestResult:
    label: str
    start: float
    end: float = 0.0
    status_code: int = 0
    error: str = ""

    @property
    def latency(self) -> float:
        return self.end - self.start

    @property
    def ok(self) -> bool:
        return not self.error and 200 <= self.status_code < 400

    @property
    def rate_limited(self) -> bool:
        return self.status_code == 429


# ---------------------------------------------------------------------------
# Single request
# ---------------------------------------------------------------------------
async def single_request(client: httpx.AsyncClient, label: str) -> RequestResult:
    method, path, _ = ROUTES[label]
    result = RequestResult(label=label, start=time.monotonic())
    try:
        resp = await client.request(method, path)
        result.status_code = resp.status_code
        if resp.status_code >= 400 and resp.status_code != 429:
            result.error = f"HTTP {resp.status_code}"
    except httpx.TimeoutException:
        result.error = "timeout"
    except httpx.RequestError as exc:
        result.error = f"connection_error: {exc}"
    finally:
        result.end = time.monotonic()
    return result


# ---------------------------------------------------------------------------
# Load driver
# ---------------------------------------------------------------------------
async def run_load_test(
    url: str,
    labels: list[str],
    concurrency: int,
    duration: float,
) -> list[RequestResult]:
    results: list[RequestResult] = []
    weights = [ROUTES[label][2] for label in labels]

    async with httpx.AsyncClient(base_url=url, timeout=httpx.Timeout(30.0, connect=5.0)) as client:
        warmup = await single_request(client, "health")
        if warmup.ok:
            console.print(f"[bold yellow]Warmup ok[/] ({warmup.latency*1000:.0f}ms)")
        else:
            console.print(f"[red]Warmup failed: {warmup.error or warmup.status_code}[/]")

        console.print(f"\n[bold green]Starting load test:[/] concurrency={concurrency}, duration={duration}s")
        end_time = time.monotonic() + duration

        async def worker() -> None:
            while time.monotonic() < end_time:
                label = random.choices(labels, weights=weights, k=1)[0]
                results.append(await single_request(client, label))

        tasks = [asyncio.create_task(worker()) for _ in range(concurrency)]

        with Live(console=console, refresh_per_second=2) as live:
            while time.monotonic() < end_time:
                await asyncio.sleep(0.5)
                live.update(_make_live_table(results, concurrency, end_time))

        await asyncio.gather(*tasks, return_exceptions=True)

    return results


def _make_live_table(results: list[RequestResult], concurrency: int, end_time: float) -> Table:
    ok = [r for r in results if r.ok]
    limited = sum(1 for r in results if r.rate_limited)
    errors = sum(1 for r in results if r.error)

    table = Table(title="[bold]Live Load Test Stats[/]", show_header=True)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="white")

    table.add_row("Completed requests", str(len(results)))
    table.add_row("Successful", str(len(ok)))
    table.add_row("Rate limited (429)", f"[yellow]{limited}[/]" if limited else "0")
    table.add_row("Errors", f"[red]{errors}[/]" if errors else "0")
    table.add_row("Concurrency", str(concurrency))

    if ok:
        lats = np.array([r.latency for r in ok])
        table.add_row("Latency P50", f"{np.percentile(lats, 50)*1000:.0f}ms")
        table.add_row("Latency P95", f"{np.percentile(lats, 95)*1000:.0f}ms")

    table.add_row("Time remaining", f"{max(0, end_time - time.monotonic()):.0f}s")
    return table


# ---------------------------------------------------------------------------
# Final report
# ---------------------------------------------------------------------------
def summarize(results: list[RequestResult]) -> dict:
    """Aggregate figures for the report; empty dict when nothing completed."""
    if not results:
        return {}
    ok = [r for r in results if r.ok]
    wall = max(r.end for r in results) - min(r.start for r in results)
    summary = {
        "total": len(results),
        "ok": len(ok),
        "rate_limited": sum(1 for r in results if r.rate_limited),
        "errors": sum(1 for r in results if r.error),
        "wall": wall,
        "rps": len(results) / wall if wall > 0 else 0.0,
        "statuses": Counter(r.status_code for r in results),
        "latency": {},
    }
    if ok:
        lats = np.array([r.latency for r in ok])
        summary["latency"] = {p: float(np.percentile(lats, p)) for p in (50, 90, 95, 99)}
    return summary


def print_report(results: list[RequestResult]) -> None:
    summary = summarize(results)
    if not summary:
        console.print("[red]No results collected.[/]")
        return

    console.rule("[bold]Load Test Report[/]")

    console.print(f"\n[bold]Summary[/]")
    console.print(f"  Total requests   : {summary['total']}")
    console.print(f"  Successful       : {summary['ok']}  ({100*summary['ok']/summary['total']:.1f}%)")
    console.print(f"  Rate limited     : {summary['rate_limited']}")
    console.print(f"  Failed           : {summary['errors']}")
    console.print(f"  Wall time        : {summary['wall']:.1f}s")
    console.print(f"  Requests/sec     : {summary['rps']:.2f}")

    if summary["latency"]:
        console.print(f"\n[bold]Latency (successful requests)[/]")
        for p, value in summary["latency"].items():
            console.print(f"  P{p:2d}  : {value*1000:.1f}ms")

    console.print(f"\n[bold]By Route[/]")
    t = Table()
    t.add_column("Route"); t.add_column("N"); t.add_column("OK"); t.add_column("429"); t.add_column("P50 lat")
    for label in sorted({r.label for r in results}):
        subset = [r for r in results if r.label == label]
        good = np.array([r.latency for r in subset if r.ok])
        t.add_row(
            label,
            str(len(subset)),
            str(len(good)),
            str(sum(1 for r in subset if r.rate_limited)),
            f"{np.percentile(good, 50)*1000:.1f}ms" if len(good) else "n/a",
        )
    console.print(t)

    console.print(f"\n[bold]Status Codes[/]")
    for status, count in sorted(summary["statuses"].items()):
        console.print(f"  {status:>4}  {count:6d}")

    errs = [r for r in results if r.error]
    if errs:
        console.print(f"\n[bold red]Errors[/]")
        for err, count in Counter(r.error for r in errs).most_common(10):
            console.print(f"  {count:4d}x  {err}")


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------
def main() -> None:
    parser = argparse.ArgumentParser(description="Vendor Proxy Load Tester")
    parser.add_argument("--url",         default="http://localhost:10000")
    parser.add_argument("--routes",      default=",".join(ROUTES), help="Comma-separated route labels")
    parser.add_argument("--concurrency", type=int, default=16)
    parser.add_argument("--duration",    type=float, default=60.0, help="Test duration in seconds")
    args = parser.parse_args()

    labels = [label.strip() for label in args.routes.split(",") if label.strip()]
    unknown = [label for label in labels if label not in ROUTES]
    if unknown:
        parser.error(f"unknown routes: {', '.join(unknown)}")

    results = asyncio.run(run_load_test(
        url=args.url,
        labels=labels,
        concurrency=args.concurrency,
        duration=args.duration,
    ))

    print_report(results)


if __name__ == "__main__":
    main()
