# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""structlog setup for termreplay.

Logs always go to stderr: stdout carries replayed terminal output and
decoded packet dumps. Level and format come from ``Settings``
(``TERMREPLAY_LOG_LEVEL``, ``TERMREPLAY_LOG_FORMAT``).
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from termreplay.settings import Settings

__all__ = ["bind_context", "configure_logging", "get_logger"]


def configure_logging(settings: Settings | None = None) -> None:
    """Configure structlog once at startup.

    Args:
        settings: Settings instance (read from the environment if None)
    """
    if settings is None:
        from termreplay.settings import Settings

        settings = Settings()

    log_level = getattr(logging, settings.log_level.upper(), logging.WARNING)

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if settings.log_format == "json":
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer(sort_keys=True)]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str | None = None) -> Any:
    """Get a logger, tagged with ``name`` (usually the module's ``__name__``)."""
    if name:
        return structlog.get_logger(logger_name=name)
    return structlog.get_logger()


def bind_context(**values: Any) -> None:
    """Attach values to every log event of the current context, e.g. the recording ID."""
    structlog.contextvars.bind_contextvars(**values)
