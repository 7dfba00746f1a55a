"""Channel senders for push, email and SMS."""

from notification_service.features.notifications.channels.base import (
    ChannelSender,
    ProviderSender,
    SendResult,
)
from notification_service.features.notifications.channels.email import EmailSender
from notification_service.features.notifications.channels.push import PushSender
from notification_service.features.notifications.channels.sms import SmsSender

__all__ = [
    "ChannelSender",
    "EmailSender",
    "ProviderSender",
    "PushSender",
    "SendResult",
    "SmsSender",
]
