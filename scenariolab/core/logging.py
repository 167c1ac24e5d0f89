"""structlog setup for scenario builds.

Every event emitted while the executor builds a scenario carries the run id
of that build, so interleaved output of concurrent builds can be told apart.
"""

import logging
from collections.abc import Iterator, MutableMapping
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

import structlog

from scenariolab.core.config import get_settings

run_id_ctx: ContextVar[str | None] = ContextVar("run_id", default=None)


@contextmanager
def run_context(run_id: str) -> Iterator[str]:
    """Tag log events emitted inside the block with ``run_id``."""
    token = run_id_ctx.set(run_id)
    try:
        yield run_id
    finally:
        run_id_ctx.reset(token)


def add_run_id(
    _logger: structlog.types.WrappedLogger,
    _method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """structlog processor copying the active build's run id into the event."""
    run_id = run_id_ctx.get()
    if run_id:
        event_dict["run_id"] = run_id
    return event_dict


def _renderer(log_format: str) -> structlog.types.Processor:
    if log_format == "console":
        return structlog.dev.ConsoleRenderer(colors=True)
    return structlog.processors.JSONRenderer()


def configure_logging(level: str | None = None) -> None:
    """Configure structlog for the CLI and library use.

    Args:
        level: Level name overriding ``LOG_LEVEL``; the CLI passes "DEBUG"
            for ``--verbose``.
    """
    settings = get_settings()
    threshold = getattr(logging, level or settings.log_level)

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            add_run_id,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            structlog.processors.format_exc_info,
            _renderer(settings.log_format),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(threshold),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        # Cached loggers keep the output stream they were created with
        cache_logger_on_first_use=not settings.is_testing,
    )


def get_logger(name: str | None = None) -> structlog.typing.FilteringBoundLogger:
    """Return a module logger; configuration is applied lazily on first use."""
    logger: structlog.typing.FilteringBoundLogger = structlog.get_logger(name)
    return logger
