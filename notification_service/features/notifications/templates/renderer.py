"""Jinja2 template rendering for notifications."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from jinja2 import TemplateError
from jinja2.sandbox import SandboxedEnvironment

from notification_service.core.exceptions import TemplateRenderError
from notification_service.infra.logging import get_lazy_logger

if TYPE_CHECKING:
    from notification_service.features.notifications.entities import Template


class TemplateRenderer:
    """Jinja2 renderer with security sandboxing.

    Uses SandboxedEnvironment to prevent arbitrary code execution from
    template bodies stored in the database. Missing variables render as
    empty strings. Autoescape is off because every channel carries plain
    text.
    """

    def __init__(self) -> None:
        self._env = SandboxedEnvironment(autoescape=False, trim_blocks=True, lstrip_blocks=True)
        self._lazy = get_lazy_logger(__name__)

    def render(self, template: Template, data: dict[str, Any] | None = None) -> dict[str, Any]:
        """Render subject and body of ``template`` against ``data``.

        Returns:
            Dictionary with ``channel``, ``locale`` and the rendered
            ``subject`` (when the template has one) and ``body``.

        Raises:
            TemplateRenderError: If the template cannot be compiled or rendered.
        """
        context = data or {}
        rendered: dict[str, Any] = {"channel": template.channel, "locale": template.locale}
        try:
            if template.subject:
                rendered["subject"] = self._env.from_string(template.subject).render(**context)
            rendered["body"] = self._env.from_string(template.body).render(**context)
        except TemplateError as exc:
            msg = f"Failed to render template {template.template_key}: {exc}"
            raise TemplateRenderError(
                msg,
                template_key=template.template_key,
                channel=template.channel,
            ) from exc

        self._lazy.debug(
            lambda: f"Rendered template {template.template_key} for {template.channel} ({template.locale})",
        )
        return rendered
