"""Structured logging setup.

structlog renders every event, stdlib logging owns the handler. Request
correlation ids travel through a context variable so that log lines emitted
while handling one HTTP request (including the agent work it triggers) can be
grouped together.

Example:
    >>> setup_logging(LoggingConfig(level="DEBUG", format="console"))
    >>> logger = get_logger(__name__)
    >>> logger.info("task_submitted", agent_id="planner-001")
"""
from __future__ import annotations

import contextvars
import logging
import sys
from typing import Any, Optional

import structlog

from autoforge.config import LoggingConfig

_correlation_id: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "correlation_id", default=None
)


def add_correlation_id(logger: Any, method_name: str, event_dict: dict) -> dict:
    """structlog processor adding the current correlation id, if any."""
    correlation_id = _correlation_id.get()
    if correlation_id is not None:
        event_dict["correlation_id"] = correlation_id
    return event_dict


def set_correlation_id(correlation_id: Optional[str]) -> None:
    _correlation_id.set(correlation_id)


def setup_logging(config: LoggingConfig) -> None:
    """Configure the stdlib root handler and the structlog processor chain."""
    log_level = getattr(logging, config.level, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    root_logger.addHandler(handler)

    if config.format == "json":
        renderer: Any = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.contextvars.merge_contextvars,
            add_correlation_id,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
