"""Structured logging for graphsync."""

from __future__ import annotations

import logging
import sys
from typing import Any, Protocol, runtime_checkable

import structlog

from graphsync.config import LoggingBehavior, Settings, get_settings


def configure_logging(level: str = "info", *, json: bool = True) -> None:
    """Configure structlog and the standard library root logger."""
    renderer: Any = (
        structlog.processors.JSONRenderer()
        if json
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper()),
    )


def get_logger(name: str = "graphsync") -> Any:
    """Get a structlog logger bound to ``name``."""
    return structlog.get_logger(name)


@runtime_checkable
class Logger(Protocol):
    """Fire-and-forget logging collaborator used by the caches and services."""

    def log(self, behavior: LoggingBehavior, message: str) -> None:
        """Record ``message`` under ``behavior``."""
        ...


class StructlogLogger:
    """Logger that forwards enabled behaviors to structlog."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        name: str = "graphsync",
    ) -> None:
        self._settings = settings or get_settings()
        self._logger = get_logger(name)

    def is_enabled(self, behavior: LoggingBehavior) -> bool:
        return behavior in self._settings.logging_behaviors

    def log(self, behavior: LoggingBehavior, message: str) -> None:
        if not self.is_enabled(behavior):
            return
        if behavior is LoggingBehavior.DEVELOPER_ERRORS:
            self._logger.error(message, behavior=behavior.value)
        elif behavior is LoggingBehavior.NETWORK_REQUESTS:
            self._logger.warning(message, behavior=behavior.value)
        else:
            self._logger.info(message, behavior=behavior.value)
