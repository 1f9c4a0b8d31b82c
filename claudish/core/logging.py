"""structlog configuration shared by the gateway and its tests."""

import logging
import sys
from typing import Any

import structlog


_QUIET_LOGGERS = ("httpx", "httpcore", "hpack")


def setup_logging(
    json_logs: bool = False,
    log_level_name: str = "INFO",
    configure_stdlib: bool = True,
) -> None:
    """Configure structlog processors and the stdlib root logger.

    Args:
        json_logs: Render events as JSON lines instead of the console renderer
        log_level_name: Minimum level name (DEBUG, INFO, ...)
        configure_stdlib: Also route stdlib logging through the same level
    """
    level = getattr(logging, log_level_name.upper(), logging.INFO)

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    renderer: Any
    if json_logs:
        renderer = structlog.processors.JSONRenderer()
        shared_processors.append(structlog.processors.format_exc_info)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )

    if configure_stdlib:
        logging.basicConfig(
            level=level, format="%(message)s", stream=sys.stderr, force=True
        )
        for name in _QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> Any:
    """Return a structlog logger bound to ``name``."""
    return structlog.get_logger(name)
