"""Notification dispatch service.

Delivers business events to end users over push, email and SMS with inbound
deduplication, ordered channel fallback and backoff-driven retry.
"""

__version__ = "1.0.0"
