"""Audit chain configuration models."""

from pydantic import BaseModel, Field


class AuditConfig(BaseModel):
    """Behaviour of the ingestor, verifier and exporter."""

    stop_at_first_break: bool = Field(
        default=True,
        description="Stop verification at the first integrity break",
    )
    verify_batch_size: int = Field(
        default=500,
        gt=0,
        description="Records fetched per store round-trip while verifying",
    )
    lock_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Maximum wait for the append lock (seconds)",
    )
    max_append_retries: int = Field(
        default=3,
        ge=0,
        description="Retries after a stale-tail conflict from the store",
    )
    export_max_rows: int = Field(
        default=100_000,
        gt=0,
        description="Upper bound on rows rendered by a single export",
    )
    default_source: str = Field(
        default="system",
        min_length=1,
        description="Source recorded when the caller does not supply one",
    )
