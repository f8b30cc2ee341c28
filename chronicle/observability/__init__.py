"""Observability: structured logging and metrics.

Uses structlog for logging and Prometheus for metrics.
"""

from chronicle.config.models.observability import ObservabilityConfig
from chronicle.observability.logging import setup_logging
from chronicle.observability.metrics import setup_metrics


def setup_observability(config: ObservabilityConfig) -> None:
    """Configure logging and the metrics endpoint from settings."""
    setup_logging(
        level=config.logging.level,
        format=config.logging.format,
        redact_pii=config.logging.redact_pii,
    )
    setup_metrics(enabled=config.metrics.enabled, port=config.metrics.port)
