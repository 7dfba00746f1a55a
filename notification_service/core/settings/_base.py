"""Shared base for all settings domains."""

from __future__ import annotations

from typing import Any, ClassVar

from pydantic_settings import BaseSettings

from .yaml_sources import create_yaml_source


class DomainSettings(BaseSettings):
    """Base class wiring the source precedence used by every domain.

    Precedence: init kwargs > YAML/conf.d > environment > .env > secrets.
    """

    yaml_domain: ClassVar[str] = ""

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: Any,
        env_settings: Any,
        dotenv_settings: Any,
        file_secret_settings: Any,
    ) -> tuple[Any, ...]:
        """Customize settings source precedence: init > yaml > env > dotenv > secrets."""
        return (
            init_settings,
            create_yaml_source(settings_cls, cls.yaml_domain),
            env_settings,
            dotenv_settings,
            file_secret_settings,
        )
