"""Record store configuration models."""

from typing import Literal, Self

from pydantic import BaseModel, Field, model_validator

BackendType = Literal["inmemory", "postgres"]


class AuditStoreConfig(BaseModel):
    """Which AuditRecordStore backs the log."""

    backend: BackendType = Field(default="inmemory", description="Record store backend")
    connection_url: str | None = Field(
        default=None,
        description="PostgreSQL DSN; CHRONICLE_DATABASE_URL is used when unset",
    )


class PostgresConfig(BaseModel):
    """asyncpg pool sizing and timeouts."""

    min_pool_size: int = Field(default=5, gt=0, description="Connections kept open")
    max_pool_size: int = Field(default=20, gt=0, description="Upper bound on open connections")
    max_inactive_connection_lifetime: float = Field(
        default=300.0, gt=0, description="Idle seconds before a connection is closed"
    )
    command_timeout: float = Field(default=60.0, gt=0, description="Per-statement timeout (seconds)")

    @model_validator(mode="after")
    def _pool_bounds(self) -> Self:
        if self.min_pool_size > self.max_pool_size:
            raise ValueError("min_pool_size cannot exceed max_pool_size")
        return self


class StorageConfig(BaseModel):
    """Storage section of the settings."""

    audit: AuditStoreConfig = Field(default_factory=AuditStoreConfig, description="Audit record store")
    postgres: PostgresConfig = Field(
        default_factory=PostgresConfig, description="Shared PostgreSQL pool settings"
    )
