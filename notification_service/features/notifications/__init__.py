"""Notifications feature package.

Dispatch of inbound business events to push, email and SMS with ordered
fallback, inbox deduplication and scheduled retries.
"""
