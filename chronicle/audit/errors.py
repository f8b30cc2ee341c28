"""Audit error hierarchy.

A broken chain is not an error: verification returns an IntegrityReport
with valid=False. These exceptions cover caller mistakes and infrastructure
faults only.
"""


class AuditError(Exception):
    """Base exception for all audit errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(AuditError):
    """Raised when event input is malformed or incomplete.

    Raised before any hashing or persistence happens; not retryable.
    """

    def __init__(self, message: str, errors: list[dict] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class CanonicalEncodingError(ValidationError):
    """Raised when a value has no canonical representation."""


class PersistenceError(AuditError):
    """Raised when the store is unreachable or a write failed.

    No partial record is committed; the caller may retry the whole append.
    """

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class AppendConflictError(PersistenceError):
    """Raised when an append does not extend the store's current tail.

    Another writer got there first. The ingestor retries with a fresh tail.
    """


class ExportFilterError(AuditError):
    """Raised when filter parameters are contradictory or unknown."""


class AuthorizationError(AuditError):
    """Raised when the caller's AuditContext lacks a required permission."""

    def __init__(self, message: str, permission: str | None = None) -> None:
        super().__init__(message)
        self.permission = permission
