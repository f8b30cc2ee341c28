"""Enums for the audit domain."""

from enum import Enum


class AuditEventType(str, Enum):
    """Classification of an audited event."""

    USER_ACTION = "user_action"
    SYSTEM_EVENT = "system_event"
    DATA_ACCESS = "data_access"
    DATA_MODIFICATION = "data_modification"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    COMPLIANCE_CHECK = "compliance_check"
    CONFIGURATION_CHANGE = "configuration_change"
    ERROR = "error"
    SECURITY_INCIDENT = "security_incident"


class AuditSeverity(str, Enum):
    """How much attention an event deserves.

    CRITICAL events additionally notify critical-event listeners.
    """

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AuditStatus(str, Enum):
    """Outcome of the audited operation."""

    SUCCESS = "success"
    FAILURE = "failure"
    WARNING = "warning"
    PENDING = "pending"


class IntegrityBreakKind(str, Enum):
    """Kinds of integrity break reported by verification.

    - HASH_MISMATCH: stored hash differs from the recomputed one
    - PREVIOUS_HASH_MISMATCH: record does not link to its predecessor
    - SEQUENCE_GAP: a sequence position is missing
    - MALFORMED_RECORD: a stored row cannot be read back as a record
    """

    HASH_MISMATCH = "hash_mismatch"
    PREVIOUS_HASH_MISMATCH = "previous_hash_mismatch"
    SEQUENCE_GAP = "sequence_gap"
    MALFORMED_RECORD = "malformed_record"
