"""Configuration model exports.

    from chronicle.config.models import AuditConfig, StorageConfig
"""

from chronicle.config.models.audit import AuditConfig
from chronicle.config.models.observability import (
    LoggingConfig,
    MetricsConfig,
    ObservabilityConfig,
)
from chronicle.config.models.storage import (
    AuditStoreConfig,
    PostgresConfig,
    StorageConfig,
)

__all__ = [
    # Audit
    "AuditConfig",
    # Observability
    "LoggingConfig",
    "MetricsConfig",
    "ObservabilityConfig",
    # Storage
    "AuditStoreConfig",
    "PostgresConfig",
    "StorageConfig",
]
