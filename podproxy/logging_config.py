import logging
import sys

import structlog

from podproxy.config import settings


def configure_logging(level: str | None = None, fmt: str | None = None) -> None:
    """Route stdlib and structlog output to stdout.

    ``fmt`` is ``"json"`` for production and ``"console"`` for a local
    terminal; both default to the values in settings.
    """
    log_level = getattr(logging, (level or settings.log_level).upper(), logging.INFO)
    fmt = (fmt or settings.log_format).lower()

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )
    # httpx logs every outbound URL at INFO; keep it quiet
    logging.getLogger("httpx").setLevel(max(log_level, logging.WARNING))

    renderer = (
        structlog.dev.ConsoleRenderer()
        if fmt == "console"
        else structlog.processors.JSONRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
