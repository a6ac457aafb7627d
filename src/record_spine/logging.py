"""
Structured logging for record-spine.

Every module that logs does so through ``get_logger(__name__)``; nothing is
printed until an application calls :func:`configure_logging` (directly or via
``RecordSpineSettings.configure_logging``). Events are dotted names
(``update.applied``, ``query.executed``) with keyword fields, never
formatted strings.

Architecture:
    ::

        configure_logging(level="INFO", json_format=True, service="users-api")
            │
            ▼
        TimeStamper(iso)                      (optional)
        merge_contextvars                     LogContext / bind_context fields
        add_log_level, add_logger_name
        _add_service_metadata                 service.name
        _expand_errors                        RecordSpineError → to_dict()
        _ecs_field_names                      JSON only: @timestamp, log.level, log.logger
        JSONRenderer | ConsoleRenderer

Examples:
    >>> configure_logging(level="DEBUG", json_format=False)
    >>> with LogContext(request_id="r-17"):
    ...     repo.update(1, patch)        # update.* events carry request_id

Tags:
    logging, structlog, observability, record-spine
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from record_spine.errors import RecordSpineError

_service_name = "record-spine"

_ECS_RENAMES = {
    "timestamp": "@timestamp",
    "level": "log.level",
    "logger": "log.logger",
}


def _add_service_metadata(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("service.name", _service_name)
    return event_dict


def _expand_errors(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Replace library errors passed as fields with their structured form."""
    for key, value in event_dict.items():
        if isinstance(value, RecordSpineError):
            event_dict[key] = value.to_dict()
    return event_dict


def _ecs_field_names(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    for old, new in _ECS_RENAMES.items():
        if old in event_dict:
            event_dict[new] = event_dict.pop(old)
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "record-spine",
    add_timestamp: bool = True,
) -> None:
    """Route structlog events through the stdlib ``logging`` module.

    Args:
        level: Minimum level name; lower events are dropped before rendering.
        json_format: JSON lines when True, colored console when False,
            JSON unless stdout is a terminal when None.
        service: Value of the ``service.name`` field.
        add_timestamp: Prefix every event with an ISO timestamp.
    """
    global _service_name
    _service_name = service
    numeric_level = getattr(logging, level.upper())

    if json_format is None:
        json_format = not sys.stdout.isatty()

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        _add_service_metadata,
        _expand_errors,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
    ]
    if add_timestamp:
        processors.insert(0, structlog.processors.TimeStamper(fmt="iso"))

    renderer: Processor
    if json_format:
        processors.append(_ecs_field_names)
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=[*processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric_level)


def get_logger(name: str | None = None) -> Any:
    return structlog.get_logger(name)


def bind_context(**fields: Any) -> None:
    """Attach *fields* to every event logged from this context."""
    structlog.contextvars.bind_contextvars(**fields)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


class LogContext:
    """Bind fields for the duration of a ``with`` block.

    Example:
        with LogContext(request_id="r-17", record_type="User"):
            repo.update(1, patch)
    """

    def __init__(self, **fields: Any):
        self._fields = fields

    def __enter__(self) -> LogContext:
        bind_context(**self._fields)
        return self

    def __exit__(self, *exc_info: Any) -> None:
        structlog.contextvars.unbind_contextvars(*self._fields)


__all__ = [
    "configure_logging",
    "get_logger",
    "bind_context",
    "clear_context",
    "LogContext",
]
