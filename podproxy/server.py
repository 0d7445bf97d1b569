#!/usr/bin/env python3
"""Entry point: run the proxy with uvicorn."""
import uvicorn

from podproxy.config import settings


def main() -> None:
    uvicorn.run(
        "podproxy.app:app",
        host=settings.host,
        port=settings.port,
        workers=1,          # rate-limit windows and the ring log live in this process
        loop="uvloop",
        http="httptools",
        log_config=None,    # we handle logging via structlog
        access_log=False,
        server_header=False,
        proxy_headers=True,
        forwarded_allow_ips="*",
    )


if __name__ == "__main__":
    main()
