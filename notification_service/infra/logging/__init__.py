"""Logging infrastructure.

Provides structured logging with:
- JSONL format for Loki/Elasticsearch ingestion
- Automatic context injection (event_id, notification_id, correlation_id)
- QueueHandler + QueueListener for non-blocking I/O
- Lazy evaluation for expensive debug messages

Basic usage:
    from notification_service.infra.logging import get_logger, log_context

    logger = get_logger(__name__)

    with log_context(event_id="e1"):
        logger.info("Dispatching")  # Includes event_id
"""

from notification_service.infra.logging.config import (
    configure_logging,
    setup_logging,
    shutdown,
)
from notification_service.infra.logging.context import (
    ContextBoundLogger,
    ContextInjectingFilter,
    get_log_context,
    get_logger,
    log_context,
)
from notification_service.infra.logging.formatters import JSONFormatter
from notification_service.infra.logging.lazy import (
    LazyLoggerAdapter,
    get_lazy_logger,
)

__all__ = [
    "ContextBoundLogger",
    "ContextInjectingFilter",
    "JSONFormatter",
    "LazyLoggerAdapter",
    "configure_logging",
    "get_lazy_logger",
    "get_log_context",
    "get_logger",
    "log_context",
    "setup_logging",
    "shutdown",
]
