"""Logging configuration for the page fetcher service.

structlog events and stdlib records (uvicorn, asyncio, Playwright) share a
single stdout handler, so JSON mode emits one JSON object per line no matter
which library produced the record.
"""

import logging
import sys

import structlog

from page_fetcher.config import ServiceSettings, settings

# Loggers that may carry handlers of their own; they are routed to the root
ROUTED_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def _shared_processors() -> list:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def configure_logging(config: ServiceSettings | None = None) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        config: Optional settings override. Uses global settings if None.
    """
    config = config or settings
    log_level = getattr(logging, config.log_level.upper())
    shared_processors = _shared_processors()

    if config.log_format.lower() == "json":
        renderers = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        renderers = [structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())]

    structlog.configure(
        processors=shared_processors
        + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta]
            + renderers,
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(log_level)

    for name in ROUTED_LOGGERS:
        routed = logging.getLogger(name)
        routed.handlers = []
        routed.propagate = True
