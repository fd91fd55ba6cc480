"""structlog configuration shared by the library and the CLI."""

from __future__ import annotations

import logging
import sys

import structlog


def _processors(json_output: bool) -> list[structlog.types.Processor]:
    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer(colors=False)
    )
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso", utc=True, key="ts"),
        renderer,
    ]


def setup_logging(level: str = "info", *, json_output: bool = True) -> None:
    """Configure structlog to write to stderr, keeping stdout for command output.

    JSON lines by default; ``json_output=False`` (``FLUXSCOPE_LOG_JSON=false``)
    switches to the plain console renderer.
    """
    structlog.configure(
        processors=_processors(json_output),
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level.upper(), logging.INFO)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(component: str) -> structlog.stdlib.BoundLogger:
    """Logger bound with ``component`` (``trace``, ``graph.builder``, ...)."""
    return structlog.get_logger(component=component)  # type: ignore[return-value]
