"""Test factories for creating test data."""

from tests.factories.audit import AuditEventFactory, AuditRecordFactory

__all__ = [
    "AuditEventFactory",
    "AuditRecordFactory",
]
