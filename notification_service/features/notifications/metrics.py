"""Prometheus metrics for notification dispatch monitoring.

This module provides metrics for tracking notifications:
- Received and dispatched counters
- Sent/failed counters by channel and provider
- Attempt duration histogram
- In-flight provider calls gauge
- Duplicate and rate-limit counters

Components never touch the collectors directly; they receive a
``NotificationMetrics`` handle at construction.

Usage:
    metrics = NotificationMetrics()  # process-wide collectors
    metrics.record_received("order.paid")

    # Tests bind a private registry
    metrics = NotificationMetrics(CollectorRegistry())
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, Histogram


@dataclass(frozen=True, slots=True)
class _Collectors:
    received: Counter
    dispatched: Counter
    sent: Counter
    failed: Counter
    attempt_duration: Histogram
    inflight: Gauge
    dedupe_hits: Counter
    provider_rate_limited: Counter


def _build_collectors(registry: CollectorRegistry) -> _Collectors:
    return _Collectors(
        received=Counter(
            "notifications_received_total",
            "Total number of notifications received",
            labelnames=["event_type"],
            registry=registry,
        ),
        dispatched=Counter(
            "notifications_dispatched_total",
            "Total number of provider calls issued",
            labelnames=["channel", "provider"],
            registry=registry,
        ),
        sent=Counter(
            "notifications_sent_total",
            "Total number of notifications sent successfully",
            labelnames=["channel", "provider"],
            registry=registry,
        ),
        failed=Counter(
            "notifications_failed_total",
            "Total number of failed deliveries",
            labelnames=["channel", "provider", "reason"],
            registry=registry,
        ),
        attempt_duration=Histogram(
            "notifications_attempt_duration_seconds",
            "Duration of notification attempts",
            labelnames=["channel", "provider"],
            buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0],
            registry=registry,
        ),
        inflight=Gauge(
            "notifications_inflight",
            "Number of provider calls currently in progress",
            labelnames=["channel"],
            registry=registry,
        ),
        dedupe_hits=Counter(
            "dedupe_hits_total",
            "Total number of duplicate events detected",
            registry=registry,
        ),
        provider_rate_limited=Counter(
            "provider_rate_limited_total",
            "Total number of rate limit responses by provider",
            labelnames=["provider"],
            registry=registry,
        ),
    )


_default_collectors = _build_collectors(REGISTRY)


class NotificationMetrics:
    """Handle over the notification collectors.

    Args:
        registry: Private registry to register fresh collectors on. When
            omitted the process-wide collectors on the default registry are used.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry or REGISTRY
        self._c = _build_collectors(registry) if registry is not None else _default_collectors

    def record_received(self, event_type: str) -> None:
        self._c.received.labels(event_type=event_type).inc()

    def record_dispatched(self, channel: str, provider: str) -> None:
        self._c.dispatched.labels(channel=channel, provider=provider).inc()

    def record_sent(self, channel: str, provider: str, duration_ms: int | None) -> None:
        self._c.sent.labels(channel=channel, provider=provider).inc()
        if duration_ms is not None:
            self._c.attempt_duration.labels(channel=channel, provider=provider).observe(
                duration_ms / 1000,
            )

    def record_failed(
        self,
        channel: str,
        provider: str,
        reason: str | None,
        duration_ms: int | None = None,
    ) -> None:
        self._c.failed.labels(channel=channel, provider=provider, reason=reason or "unknown").inc()
        if duration_ms is not None:
            self._c.attempt_duration.labels(channel=channel, provider=provider).observe(
                duration_ms / 1000,
            )

    def record_dedupe_hit(self) -> None:
        self._c.dedupe_hits.inc()

    def record_rate_limited(self, provider: str) -> None:
        self._c.provider_rate_limited.labels(provider=provider).inc()

    @contextmanager
    def inflight(self, channel: str) -> Iterator[None]:
        """Count a provider call as in flight for the duration of the block."""
        gauge = self._c.inflight.labels(channel=channel)
        gauge.inc()
        try:
            yield
        finally:
            gauge.dec()

    def value(self, name: str, labels: dict[str, str] | None = None) -> float:
        """Read a sample from this handle's registry (diagnostics and tests)."""
        return self.registry.get_sample_value(name, labels or {}) or 0.0
