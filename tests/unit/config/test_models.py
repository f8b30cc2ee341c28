"""Unit tests for configuration Pydantic models."""

import pytest
from pydantic import ValidationError

from chronicle.config.models import (
    AuditConfig,
    AuditStoreConfig,
    LoggingConfig,
    MetricsConfig,
    PostgresConfig,
)


class TestAuditConfig:
    """Tests for AuditConfig model."""

    def test_defaults(self) -> None:
        """Default values are correct."""
        config = AuditConfig()
        assert config.lock_timeout_seconds == 10.0
        assert config.export_max_rows == 100_000

    @pytest.mark.parametrize(
        "field", ["verify_batch_size", "lock_timeout_seconds", "export_max_rows"]
    )
    def test_must_be_positive(self, field: str) -> None:
        """Sizes and timeouts must be > 0."""
        with pytest.raises(ValidationError):
            AuditConfig(**{field: 0})

    def test_retries_can_be_zero(self) -> None:
        """max_append_retries can be 0."""
        assert AuditConfig(max_append_retries=0).max_append_retries == 0

    def test_retries_cannot_be_negative(self) -> None:
        """max_append_retries must be >= 0."""
        with pytest.raises(ValidationError):
            AuditConfig(max_append_retries=-1)

    def test_default_source_not_empty(self) -> None:
        """default_source must be non-empty."""
        with pytest.raises(ValidationError):
            AuditConfig(default_source="")


class TestStorageModels:
    """Tests for storage configuration."""

    def test_backend_choices(self) -> None:
        """Only inmemory and postgres are accepted."""
        assert AuditStoreConfig(backend="postgres").backend == "postgres"
        with pytest.raises(ValidationError):
            AuditStoreConfig(backend="sqlite")

    def test_pool_sizes_positive(self) -> None:
        """Pool sizes must be > 0."""
        with pytest.raises(ValidationError):
            PostgresConfig(min_pool_size=0)

    def test_pool_bounds_ordered(self) -> None:
        """min_pool_size cannot exceed max_pool_size."""
        with pytest.raises(ValidationError, match="min_pool_size"):
            PostgresConfig(min_pool_size=10, max_pool_size=2)


class TestObservabilityModels:
    """Tests for observability configuration."""

    def test_logging_format(self) -> None:
        """Only json and console formats are accepted."""
        assert LoggingConfig(format="console").format == "console"
        with pytest.raises(ValidationError):
            LoggingConfig(format="xml")

    @pytest.mark.parametrize("port", [0, 65536])
    def test_metrics_port_range(self, port: int) -> None:
        """Port must be within 1..65535."""
        with pytest.raises(ValidationError):
            MetricsConfig(port=port)
