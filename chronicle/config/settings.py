"""Root settings model.

Sources, highest priority first: constructor arguments, CHRONICLE_*
environment variables, the merged TOML layers, model defaults.
"""

from typing import Any

from pydantic import Field
from pydantic.fields import FieldInfo
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from chronicle.config.models.audit import AuditConfig
from chronicle.config.models.observability import ObservabilityConfig
from chronicle.config.models.storage import StorageConfig


# Merged TOML layers, installed by get_settings() before Settings() is built
_toml_layers: dict[str, Any] = {}


def set_toml_config(config: dict[str, Any]) -> None:
    """Install the merged TOML configuration read by Settings."""
    global _toml_layers
    _toml_layers = dict(config)


class TomlLayerSource(PydanticBaseSettingsSource):
    """Settings source serving the merged TOML layers."""

    def get_field_value(self, field: FieldInfo, field_name: str) -> tuple[Any, str, bool]:  # noqa: ARG002
        return _toml_layers.get(field_name), field_name, field_name in _toml_layers

    def __call__(self) -> dict[str, Any]:
        return {name: value for name, value in _toml_layers.items() if value is not None}


class Settings(BaseSettings):
    """Chronicle configuration: audit behaviour, storage and observability."""

    model_config = SettingsConfigDict(
        env_prefix="CHRONICLE_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = Field(default="chronicle", description="Application name")
    debug: bool = Field(default=False, description="Enable debug mode")

    audit: AuditConfig = Field(default_factory=AuditConfig, description="Audit chain behaviour")
    storage: StorageConfig = Field(
        default_factory=StorageConfig,
        description="Record store backend",
    )
    observability: ObservabilityConfig = Field(
        default_factory=ObservabilityConfig,
        description="Logging and metrics",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        file_secret_settings: PydanticBaseSettingsSource,  # noqa: ARG003
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return init_settings, env_settings, TomlLayerSource(settings_cls)
