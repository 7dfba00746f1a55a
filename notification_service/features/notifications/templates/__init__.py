"""Notification templates: rendering and default seeds."""

from notification_service.features.notifications.templates.renderer import TemplateRenderer
from notification_service.features.notifications.templates.seeds import (
    DEFAULT_TEMPLATES,
    seed_default_templates,
)

__all__ = ["DEFAULT_TEMPLATES", "TemplateRenderer", "seed_default_templates"]
