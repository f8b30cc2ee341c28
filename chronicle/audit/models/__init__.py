"""Audit domain models.

Contains the Pydantic models of the audit log:
- AuditEventInput for what producers submit
- AuditRecord for the immutable, hash-chained entries
- Typed details variants per event type
- AuditRecordFilter for reads and exports
- IntegrityReport for verification results
"""

from chronicle.audit.models.details import (
    DETAILS_BY_EVENT_TYPE,
    AuthenticationDetails,
    AuthorizationDetails,
    ComplianceCheckDetails,
    ConfigurationChangeDetails,
    DataAccessDetails,
    DataModificationDetails,
    ErrorDetails,
    EventDetails,
    SecurityIncidentDetails,
    SystemEventDetails,
    UserActionDetails,
)
from chronicle.audit.models.enums import (
    AuditEventType,
    AuditSeverity,
    AuditStatus,
    IntegrityBreakKind,
)
from chronicle.audit.models.filters import AuditRecordFilter, coerce_filter
from chronicle.audit.models.record import AuditEventInput, AuditRecord, utc_now
from chronicle.audit.models.report import IntegrityBreak, IntegrityReport, VerifyRange

__all__ = [
    "AuditEventInput",
    "AuditEventType",
    "AuditRecord",
    "AuditRecordFilter",
    "AuditSeverity",
    "AuditStatus",
    "AuthenticationDetails",
    "AuthorizationDetails",
    "ComplianceCheckDetails",
    "ConfigurationChangeDetails",
    "DETAILS_BY_EVENT_TYPE",
    "DataAccessDetails",
    "DataModificationDetails",
    "ErrorDetails",
    "EventDetails",
    "IntegrityBreak",
    "IntegrityBreakKind",
    "IntegrityReport",
    "SecurityIncidentDetails",
    "SystemEventDetails",
    "UserActionDetails",
    "VerifyRange",
    "coerce_filter",
    "utc_now",
]
