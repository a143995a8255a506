"""Logging setup and helpers shared by call guards.

Guards log through the ``log_*`` helpers, which accept either a structlog
style logger (keyword fields) or a stdlib logger (fields sent as ``extra``).
Services embedding guards call ``configure_structlog`` once, usually through
``GuardSettings.configure_logging``.
"""

from __future__ import annotations

import logging
import sys
from typing import Literal, Protocol

import structlog

_LOG_LEVELS: dict[str, int] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

_StdlibLogger = logging.Logger | logging.LoggerAdapter[logging.Logger]


class StructuredLogger(Protocol):
    """Logger accepting an event name plus keyword fields."""

    def info(self, event: str, **kwargs: object) -> None: ...

    def warning(self, event: str, **kwargs: object) -> None: ...

    def exception(self, event: str, **kwargs: object) -> None: ...


AnyLogger = StructuredLogger | _StdlibLogger


def get_log_level_value(level: str) -> int:
    """Map a level name such as ``" info "`` to its stdlib constant."""
    normalized = level.strip().upper()
    try:
        return _LOG_LEVELS[normalized]
    except KeyError as error:
        choices = ", ".join(sorted(_LOG_LEVELS))
        raise ValueError(f"log_level must be one of: {choices}") from error


def _log(
    logger: AnyLogger,
    level: Literal["info", "warning", "exception"],
    event: str,
    **fields: object,
) -> None:
    method = getattr(logger, level)
    if isinstance(logger, (logging.Logger, logging.LoggerAdapter)):
        method(event, extra=fields)
    else:
        method(event, **fields)


def log_info(logger: AnyLogger, event: str, **fields: object) -> None:
    _log(logger, "info", event, **fields)


def log_warning(logger: AnyLogger, event: str, **fields: object) -> None:
    _log(logger, "warning", event, **fields)


def log_exception(logger: AnyLogger, event: str, **fields: object) -> None:
    """Log ``event`` with the active exception's traceback attached."""
    _log(logger, "exception", event, **fields)


def _renderer_for_stderr() -> structlog.types.Processor:
    if sys.stderr.isatty():
        return structlog.dev.ConsoleRenderer()
    return structlog.processors.JSONRenderer()


def configure_structlog(*, log_level: str) -> structlog.stdlib.BoundLogger:
    """Route structlog and stdlib records through one stderr handler.

    Calling it again replaces the root handler, so reconfiguring is safe.
    Context variables are merged into every event, which is how the
    ``guard=<name>`` binding made around a protected call reaches events the
    operation logs itself.

    Args:
        log_level: Level name, case-insensitive.

    Returns:
        A structlog logger bound to the stdlib root logger.
    """
    level_value = get_log_level_value(log_level)
    timestamper = structlog.processors.TimeStamper(fmt="iso", utc=True)
    pre_chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        timestamper,
    ]

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer_for_stderr(),
            ],
        )
    )
    logging.basicConfig(
        format="%(message)s",
        handlers=[handler],
        level=level_value,
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            timestamper,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    return structlog.stdlib.get_logger()
