"""Structured logging for the economics assistant tool layer.

structlog events and plain stdlib records share one handler on the root
logger and are rendered exactly once by its ``ProcessorFormatter``: JSON by
default, a coloured console layout when ``LOG_PRETTY=1``. Cache, coalescing
and retry events carry the ``session_id`` and ``request_id`` of the tool call
that produced them through structlog contextvars.

Importing the module configures logging; modules then use
``structlog.get_logger(__name__)``.
"""

from __future__ import annotations

import logging
import os
from typing import Optional, TextIO

import structlog

__all__ = ["configure_logging", "bind_request_context"]

# Context keys owned by tool calls
REQUEST_CONTEXT_KEYS = ("request_id", "session_id")

_TIMESTAMPER = structlog.processors.TimeStamper(fmt="iso")


def _renderer():
    if os.getenv("LOG_PRETTY", "0").lower() in {"1", "true", "yes"}:
        return structlog.dev.ConsoleRenderer()
    return structlog.processors.JSONRenderer()


def configure_logging(force: bool = False, stream: Optional[TextIO] = None) -> None:
    """Install the structlog pipeline and the root handler once.

    Args:
        force: Reconfigure even if already configured
        stream: Target stream for the root handler, defaults to stderr
    """
    if getattr(structlog, "_econ_assist_configured", False) and not force:
        return

    # Applied to stdlib records before rendering; structlog events already have these
    foreign_pre_chain = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        _TIMESTAMPER,
    ]
    handler = logging.StreamHandler(stream)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=foreign_pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(),
            ],
        )
    )

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    level_name = os.getenv("LOG_LEVEL", "INFO").upper()
    root.setLevel(getattr(logging, level_name, logging.INFO))

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            _TIMESTAMPER,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    structlog._econ_assist_configured = True


def bind_request_context(
    request_id: Optional[str] = None,
    session_id: Optional[str] = None,
) -> None:
    """Make the current tool call's ids the only ones attached to later logs.

    Ids that are not given are unbound, so a call without a request id never
    reports the id of an earlier turn.
    """
    values = {"request_id": request_id, "session_id": session_id}
    structlog.contextvars.unbind_contextvars(
        *(key for key in REQUEST_CONTEXT_KEYS if not values[key])
    )
    present = {key: value for key, value in values.items() if value}
    if present:
        structlog.contextvars.bind_contextvars(**present)


configure_logging()
