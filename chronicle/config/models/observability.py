"""Logging and metrics configuration models."""

from typing import Literal

from pydantic import BaseModel, Field


class LoggingConfig(BaseModel):
    """structlog output settings."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Minimum level emitted"
    )
    format: Literal["json", "console"] = Field(
        default="json", description="JSON lines or human-readable console output"
    )
    redact_pii: bool = Field(
        default=True,
        description="Mask user identifiers, client addresses and contact data",
    )


class MetricsConfig(BaseModel):
    """Prometheus scrape endpoint settings."""

    enabled: bool = Field(default=True, description="Serve /metrics over HTTP")
    port: int = Field(default=9090, ge=1, le=65535, description="Scrape endpoint port")


class ObservabilityConfig(BaseModel):
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)
