"""Audit record stores."""

from chronicle.audit.store import AuditRecordStore
from chronicle.audit.stores.inmemory import InMemoryAuditRecordStore
from chronicle.audit.stores.postgres import PostgresAuditRecordStore

__all__ = [
    "AuditRecordStore",
    "InMemoryAuditRecordStore",
    "PostgresAuditRecordStore",
]
