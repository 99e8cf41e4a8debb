"""Logging setup (stdlib root level + structlog rendering)."""

import logging

import structlog

from comensales.infrastructure.config import get_log_format, get_log_level


def configure_logging(level: str | None = None, fmt: str | None = None) -> None:
    """
    Configure stdlib logging and structlog.

    Args:
        level: Log level name (defaults to LOG_LEVEL)
        fmt: "console" or "json" (defaults to LOG_FORMAT)
    """
    level_name = (level or get_log_level()).upper()
    numeric_level = getattr(logging, level_name, logging.INFO)

    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if (fmt or get_log_format()) == "json"
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
    )
