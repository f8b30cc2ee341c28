"""AuditLogService factory.

Selects the record store backend from configuration and wires the service
around it. Connection strings are read from environment variables:
- CHRONICLE_DATABASE_URL or DATABASE_URL: PostgreSQL connection string
"""

from chronicle.audit.hashing import HashChain
from chronicle.audit.service import AuditLogService
from chronicle.audit.store import AuditRecordStore
from chronicle.audit.stores.inmemory import InMemoryAuditRecordStore
from chronicle.config import Settings, get_settings
from chronicle.config.models.storage import StorageConfig
from chronicle.db.pool import PostgresPool
from chronicle.observability import setup_observability
from chronicle.observability.logging import get_logger

logger = get_logger(__name__)


def create_audit_store(
    config: StorageConfig,
    pool: PostgresPool | None = None,
) -> AuditRecordStore:
    """Create an AuditRecordStore instance based on configuration.

    Args:
        config: Storage configuration from settings
        pool: Existing pool to share; built from config when omitted

    Returns:
        Configured AuditRecordStore instance

    Raises:
        ValueError: If backend type is not supported
    """
    backend = config.audit.backend

    if backend == "inmemory":
        logger.info("creating_audit_store", backend="inmemory")
        return InMemoryAuditRecordStore()

    elif backend == "postgres":
        from chronicle.audit.stores.postgres import PostgresAuditRecordStore

        if pool is None:
            # Falls back to CHRONICLE_DATABASE_URL / DATABASE_URL when unset
            pool = PostgresPool(dsn=config.audit.connection_url, config=config.postgres)

        logger.info(
            "creating_audit_store",
            backend="postgres",
            max_pool_size=config.postgres.max_pool_size,
        )
        return PostgresAuditRecordStore(pool)

    else:
        raise ValueError(f"Unsupported audit store backend: {backend}")


def build_audit_service(
    settings: Settings | None = None,
    pool: PostgresPool | None = None,
    *,
    configure_observability: bool = True,
) -> AuditLogService:
    """Build an AuditLogService from settings.

    Applies the observability section first unless the host application
    configures logging and metrics itself. The PostgreSQL pool connects
    lazily on first use.
    """
    settings = settings or get_settings()
    if configure_observability:
        setup_observability(settings.observability)
    store = create_audit_store(settings.storage, pool=pool)
    return AuditLogService(store, hash_chain=HashChain(), config=settings.audit)
