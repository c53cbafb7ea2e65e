"""
PlugHost structured logging.

Host code logs through structlog. Plugins are free to use the standard
``logging`` module; both streams go through the same structlog formatter so
a plugin's own messages land in the host log next to the discovery and
install events that concern it.
"""

from __future__ import annotations

import logging
import sys
import time
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog
from structlog.types import EventDict, WrappedLogger

if TYPE_CHECKING:
    from plughost.core.config import LoggingConfig


LOG_FILE_NAME = "plughost.log"

_configured = False


def stringify_paths(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Render Path values as plain strings so JSON output stays readable."""
    for key, value in event_dict.items():
        if isinstance(value, Path):
            event_dict[key] = str(value)
    return event_dict


def _build_handlers(config: LoggingConfig) -> list[logging.Handler]:
    handlers: list[logging.Handler] = []

    if config.console_enabled:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(config.level)
        handlers.append(console_handler)

    if config.file_enabled:
        config.log_directory.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            config.log_directory / LOG_FILE_NAME,
            maxBytes=config.max_file_bytes,
            backupCount=config.backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        handlers.append(file_handler)

    return handlers


def setup_logging(config: LoggingConfig) -> None:
    """Configure structlog and route stdlib records from plugins through it."""
    global _configured

    if _configured:
        return

    shared_processors: list[structlog.types.Processor] = [
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        stringify_paths,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
    ]

    if config.json_format:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
        shared_processors.append(structlog.processors.format_exc_info)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
    )

    root = logging.getLogger()
    for handler in _build_handlers(config):
        handler.setFormatter(formatter)
        root.addHandler(handler)
    root.setLevel(logging.DEBUG)

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    _configured = True


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name or "plughost")


def plugin_logger(
    plugin_id: str, logger: structlog.stdlib.BoundLogger | None = None, **context: Any
) -> structlog.stdlib.BoundLogger:
    """Logger bound to one plugin, for events about that plugin."""
    return (logger or get_logger()).bind(plugin_id=plugin_id, **context)


class OperationLogger:
    """
    Context manager that logs the start and end of a plugin operation.

    Counters and other facts learned while the operation runs can be attached
    with ``add_context`` and are reported on the completion line.
    """

    def __init__(
        self,
        operation: str,
        logger: structlog.stdlib.BoundLogger | None = None,
        **context: Any,
    ):
        self.operation = operation
        self.logger = logger or get_logger()
        self.context = context
        self._started: float | None = None

    @property
    def elapsed_ms(self) -> float:
        if self._started is None:
            return 0.0
        return round((time.perf_counter() - self._started) * 1000, 1)

    def add_context(self, **context: Any) -> None:
        self.context.update(context)

    def __enter__(self) -> OperationLogger:
        self._started = time.perf_counter()
        self.logger.debug(f"{self.operation} started", **self.context)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        if exc_type is not None:
            self.logger.error(
                f"{self.operation} failed",
                elapsed_ms=self.elapsed_ms,
                error_type=exc_type.__name__,
                error=str(exc_val),
                **self.context,
            )
        else:
            self.logger.info(
                f"{self.operation} finished",
                elapsed_ms=self.elapsed_ms,
                **self.context,
            )
