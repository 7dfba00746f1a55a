"""Application exceptions.

HTTP-facing errors derive from ``AppException`` and render as RFC 7807
problem details. Domain errors derive from ``NotificationError`` and never
carry HTTP semantics; the API layer maps them explicitly.
"""

from __future__ import annotations

from http import HTTPStatus
from typing import Any, ClassVar


class AppException(Exception):
    """Base HTTP-facing exception.

    Attributes:
        status_code: HTTP status code for the error.
        detail: Human-readable error message.
        type: Problem type identifier.
        title: Short summary of the problem type.
        instance: URI of the request that failed, when known.
        extra: Additional members merged into the problem body.

    Example:
        raise AppException(
            status_code=404,
            detail="Notification abc123 not found",
            type="notification-not-found",
            extra={"notification_id": "abc123"},
        )
    """

    def __init__(
        self,
        status_code: int,
        detail: str,
        type: str = "about:blank",
        title: str | None = None,
        instance: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        self.status_code = status_code
        self.detail = detail
        self.type = type
        self.title = title or _status_phrase(status_code)
        self.instance = instance
        self.extra = extra or {}
        super().__init__(detail)

    def to_problem_detail(self) -> dict[str, Any]:
        """Render the exception as an RFC 7807 problem detail body."""
        body: dict[str, Any] = {
            "type": self.type,
            "title": self.title,
            "status": self.status_code,
            "detail": self.detail,
        }
        if self.instance:
            body["instance"] = self.instance
        body.update(self.extra)
        return body


def _status_phrase(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Error"


class _FixedStatusException(AppException):
    """AppException whose status, default type and title are class attributes."""

    status: ClassVar[int]
    default_type: ClassVar[str]
    default_title: ClassVar[str]

    def __init__(
        self,
        detail: str,
        type: str | None = None,
        instance: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            status_code=self.status,
            detail=detail,
            type=type or self.default_type,
            title=self.default_title,
            instance=instance,
            extra=extra,
        )


class NotFoundException(_FixedStatusException):
    """A notification or another addressed resource does not exist."""

    status = 404
    default_type = "not-found"
    default_title = "Not Found"


class ValidationException(_FixedStatusException):
    """Request data passed schema validation but breaks a business rule.

    Example:
        raise ValidationException(
            detail="quietHours.start must be between 0 and 23",
            extra={"field": "quietHours.start"},
        )
    """

    status = 422
    default_type = "validation-error"
    default_title = "Validation Error"


class ServiceUnavailableException(_FixedStatusException):
    """The notification engine is not wired (startup failed or shutting down)."""

    status = 503
    default_type = "service-unavailable"
    default_title = "Service Unavailable"


# ============================================================================
# Domain errors (not HTTP-aware)
# ============================================================================


class NotificationError(Exception):
    """Base class for notification domain errors."""


class InvalidTransitionError(NotificationError):
    """Raised when an entity is moved along a transition its state machine forbids.

    Attributes:
        entity: Entity name (``Notification`` or ``Attempt``).
        current: State the entity is in.
        target: State that was requested.
    """

    def __init__(self, entity: str, current: str, target: str) -> None:
        self.entity = entity
        self.current = current
        self.target = target
        super().__init__(f"{entity} cannot transition from {current} to {target}")


class DuplicateNotificationError(NotificationError):
    """Raised by the persistence boundary when an idempotency key already exists."""

    def __init__(self, idempotency_key: str) -> None:
        self.idempotency_key = idempotency_key
        super().__init__(f"Notification with idempotency key {idempotency_key!r} already exists")


class TemplateRenderError(NotificationError):
    """Raised when a template cannot be rendered against the notification metadata."""

    def __init__(self, message: str, template_key: str | None = None, channel: str | None = None) -> None:
        super().__init__(message)
        self.template_key = template_key
        self.channel = channel
