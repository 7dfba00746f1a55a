"""JSON Lines formatter for delivery logs."""

from __future__ import annotations

from datetime import UTC, datetime
import json
import logging
from typing import Any

from opentelemetry import trace

from notification_service.utils.masking import mask_email, mask_phone, mask_token

# Attributes every LogRecord carries; anything else arrived through ``extra``.
_RECORD_ATTRS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}

# Contact fields scrubbed even when a caller forgets to mask them.
_CONTACT_MASKS = {
    "email": mask_email,
    "phone": mask_phone,
    "device_token": mask_token,
}


class JSONFormatter(logging.Formatter):
    """Render one record per line as JSON.

    Fixed keys are ``timestamp`` (UTC, millisecond precision, ``Z`` suffix),
    ``level``, ``logger`` and ``message``. Fields added through ``extra`` or
    the log context follow; ``email``, ``phone`` and ``device_token`` are
    masked on the way out. When an OpenTelemetry span is active its ids are
    written as ``otel_trace_id``/``otel_span_id`` so they never collide with
    the notification's own ``trace_id``.

    Example output:
        ```json
        {"timestamp": "2025-01-01T00:00:00.123Z", "level": "INFO", "logger": "notification_service.features.notifications.dispatcher", "message": "Notification sent", "event_id": "e1", "channel": "email"}
        ```
    """

    def __init__(self, static: dict[str, Any] | None = None) -> None:
        super().__init__()
        self.static = static or {}

    def format(self, record: logging.LogRecord) -> str:
        data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC)
            .isoformat(timespec="milliseconds")
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        data.update(self.static)

        span_context = trace.get_current_span().get_span_context()
        if span_context.is_valid:
            data["otel_trace_id"] = format(span_context.trace_id, "032x")
            data["otel_span_id"] = format(span_context.span_id, "016x")

        for key, value in record.__dict__.items():
            if key in _RECORD_ATTRS or key in data:
                continue
            masker = _CONTACT_MASKS.get(key)
            data[key] = masker(value) if masker and isinstance(value, str) else value

        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info).replace("\n", "\\n")
        if record.stack_info:
            data["stack_trace"] = record.stack_info.replace("\n", "\\n")

        return json.dumps(data, ensure_ascii=False, default=str)
