"""Per-task logging context.

A dispatch or retry runs inside ``log_context(...)`` so the identifiers of
the notification being processed (event_id, notification_id,
correlation_id, trace_id) land on every record emitted underneath,
including records from channel senders and repositories that never see
those ids.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
import logging
from typing import Any

_log_context: ContextVar[dict[str, Any]] = ContextVar("log_context", default={})


def get_log_context() -> dict[str, Any]:
    """Copy of the identifiers bound to the current task."""
    return _log_context.get().copy()


@contextmanager
def log_context(**kwargs: Any) -> Iterator[None]:
    """Bind identifiers for the duration of the block.

    ``None`` values are skipped. The outer context is restored on exit so the
    retry poller never leaks one notification's ids into the next.

    Example:
        ```python
        with log_context(notification_id=str(notification.id)):
            await engine.retry(notification.id)
        ```
    """
    merged = {**_log_context.get(), **{k: v for k, v in kwargs.items() if v is not None}}
    token = _log_context.set(merged)
    try:
        yield
    finally:
        _log_context.reset(token)


class ContextInjectingFilter(logging.Filter):
    """Copy the task's log context onto each record.

    Attached to the root QueueHandler. Fields already set through ``extra``
    win over the context.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _log_context.get().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


class ContextBoundLogger(logging.LoggerAdapter):
    """Adapter carrying fixed fields, e.g. the channel and provider of a sender.

    Example:
        ```python
        logger = get_logger(__name__, channel="sms", provider="twilio")
        logger.bind(attempt=2).warning("Provider throttled")
        ```
    """

    def __init__(self, logger: logging.Logger, **context: Any) -> None:
        super().__init__(logger, context)

    def bind(self, **context: Any) -> ContextBoundLogger:
        return ContextBoundLogger(self.logger, **{**self.extra, **context})

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def get_logger(name: str, **context: Any) -> ContextBoundLogger:
    return ContextBoundLogger(logging.getLogger(name), **context)
