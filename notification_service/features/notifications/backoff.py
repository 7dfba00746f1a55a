"""Backoff policy for notification retries.

The backoff sequence is both the spacing between retries and the retry
budget: attempt ``n`` waits ``sequence[n]`` and once ``n`` reaches the
length of the sequence there is nothing left to schedule.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
import re

DEFAULT_SEQUENCE = "5s,25s,2m,10m,30m,2h,6h,24h"

_DURATION_RE = re.compile(r"^(\d+)([smhd])$")
_UNITS = {
    "s": timedelta(seconds=1),
    "m": timedelta(minutes=1),
    "h": timedelta(hours=1),
    "d": timedelta(days=1),
}


def parse_duration(value: str) -> timedelta:
    """Parse ``<int><s|m|h|d>`` or a raw millisecond count.

    Raises:
        ValueError: If the entry is empty or not a duration.
    """
    text = value.strip()
    match = _DURATION_RE.match(text)
    if match:
        amount, unit = match.groups()
        return int(amount) * _UNITS[unit]
    if not text.isdigit():
        msg = f"Invalid backoff duration: {value!r}"
        raise ValueError(msg)
    return timedelta(milliseconds=int(text))


def parse_backoff_sequence(value: str | None) -> tuple[timedelta, ...]:
    """Parse a comma separated backoff sequence.

    An empty or missing value yields the default sequence.
    """
    if not value or not value.strip():
        value = DEFAULT_SEQUENCE
    return tuple(parse_duration(part) for part in value.split(","))


@dataclass(frozen=True, slots=True)
class BackoffPolicy:
    """Ordered retry delays.

    Example:
        >>> policy = BackoffPolicy.from_string("5s,1m")
        >>> policy.delay(1)
        datetime.timedelta(seconds=60)
        >>> policy.delay(2) is None
        True
    """

    delays: tuple[timedelta, ...]

    @classmethod
    def from_string(cls, value: str | None = None) -> BackoffPolicy:
        return cls(parse_backoff_sequence(value))

    def __len__(self) -> int:
        return len(self.delays)

    def is_exhausted(self, attempt_index: int) -> bool:
        return attempt_index >= len(self.delays)

    def delay(self, attempt_index: int) -> timedelta | None:
        """Delay before retry ``attempt_index`` or None once the budget is spent."""
        if attempt_index < 0:
            msg = "attempt_index must be non-negative"
            raise ValueError(msg)
        if self.is_exhausted(attempt_index):
            return None
        return self.delays[attempt_index]

    def next_delay(self, attempt_index: int, now: datetime | None = None) -> datetime | None:
        """Absolute time of the next attempt, or None when retries are exhausted."""
        delay = self.delay(attempt_index)
        if delay is None:
            return None
        return (now or datetime.now(UTC)) + delay
