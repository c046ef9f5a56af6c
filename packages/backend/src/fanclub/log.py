"""Structured logging configuration.

Learn: Every module grabs `structlog.get_logger()` and logs dotted event
names with keyword context (`logger.info("realtime.subscribed", topic=...)`).
This module wires structlog onto stdlib logging once, at app startup.
Request/connection IDs bound via structlog.contextvars show up in every
entry thanks to merge_contextvars.
"""

import logging
import sys

import structlog


def _coerce_level(log_level: str) -> int:
    if not log_level:
        return logging.INFO
    return getattr(logging, log_level.upper(), logging.INFO)


def configure_logging(log_level: str = "INFO", log_json: bool = False) -> None:
    level = _coerce_level(log_level)

    logging.basicConfig(
        level=level,
        handlers=[logging.StreamHandler(sys.stdout)],
        format="%(message)s",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if log_json:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )
