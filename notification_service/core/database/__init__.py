"""Database building blocks shared by feature modules."""

from notification_service.core.database.base import (
    NAMING_CONVENTION,
    Base,
    TimestampMixin,
    UUIDPKMixin,
    ensure_utc,
    utcnow,
)
from notification_service.core.database.repository import BaseRepository

__all__ = [
    "NAMING_CONVENTION",
    "Base",
    "BaseRepository",
    "TimestampMixin",
    "UUIDPKMixin",
    "ensure_utc",
    "utcnow",
]
