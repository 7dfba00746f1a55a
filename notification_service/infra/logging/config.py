"""Logging configuration setup.

Provides production-ready logging configuration using:
- dictConfig for flexible configuration
- QueueHandler + QueueListener for non-blocking I/O
- ContextInjectingFilter for automatic context propagation
- All handlers on root logger (child loggers propagate)
- JSONL format for machine parsing (Loki-ready)
"""

from __future__ import annotations

import atexit
import logging
import logging.config
from logging.handlers import QueueHandler, QueueListener
from queue import Queue
from typing import TYPE_CHECKING

from notification_service.infra.logging.context import ContextInjectingFilter
from notification_service.infra.logging.formatters import JSONFormatter

if TYPE_CHECKING:
    from notification_service.core.settings.logs import LoggingSettings

_log_queue: Queue[logging.LogRecord] | None = None
_listener: QueueListener | None = None
_LOGGING_INITIALIZED = False

logger = logging.getLogger(__name__)

TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def shutdown() -> None:
    """Flush queued records and stop the background listener."""
    global _listener, _log_queue, _LOGGING_INITIALIZED

    if _listener is not None:
        _listener.stop()
        _listener = None
    _log_queue = None
    _LOGGING_INITIALIZED = False


def setup_logging(
    log_settings: LoggingSettings | None = None,
    *,
    force: bool = False,
) -> None:
    """Ensure logging is configured once across entrypoints.

    Args:
        log_settings: Optional logging settings instance. If omitted, settings
            are loaded via get_logging_settings().
        force: Reconfigure logging even if it was already initialized.
    """
    global _LOGGING_INITIALIZED

    if _LOGGING_INITIALIZED and not force:
        return

    if log_settings is None:
        from notification_service.core.settings import get_logging_settings

        log_settings = get_logging_settings()

    if force:
        shutdown()

    configure_logging(
        log_level=log_settings.level,
        json_logs=log_settings.json_logs,
        service_name=log_settings.service_name,
        library_levels=log_settings.library_levels,
    )
    _LOGGING_INITIALIZED = True


def configure_logging(
    log_level: str = "INFO",
    json_logs: bool = True,
    service_name: str = "notification-service",
    library_levels: dict[str, str] | None = None,
) -> None:
    """Configure logging with dictConfig and the QueueHandler pattern.

    The console handler lives behind a QueueListener so a slow stderr never
    blocks the event loop; the root logger only owns a QueueHandler.
    """
    global _log_queue, _listener

    logging.captureWarnings(True)

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "loggers": {
                name: {"level": level} for name, level in (library_levels or {}).items()
            },
            "root": {"level": log_level, "handlers": []},
        },
    )

    formatter: logging.Formatter
    if json_logs:
        formatter = JSONFormatter(static={"service": service_name})
    else:
        formatter = logging.Formatter(TEXT_FORMAT)

    console = logging.StreamHandler()
    console.setLevel(log_level)
    console.setFormatter(formatter)

    _log_queue = Queue(-1)
    queue_handler = QueueHandler(_log_queue)
    queue_handler.addFilter(ContextInjectingFilter())

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.addHandler(queue_handler)

    _listener = QueueListener(_log_queue, console, respect_handler_level=True)
    _listener.start()
    atexit.register(shutdown)

    logger.debug("Logging configured", extra={"json_logs": json_logs, "level": log_level})
