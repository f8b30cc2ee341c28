"""Typed detail payloads, one variant per event type.

Every variant allows extra keys so producers can attach unstructured
context next to the fields the variant declares.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from chronicle.audit.models.enums import AuditEventType


class EventDetails(BaseModel):
    """Base for event detail variants."""

    model_config = ConfigDict(extra="allow")


class UserActionDetails(EventDetails):
    target_id: str | None = Field(default=None, description="Object acted upon")
    description: str | None = None


class SystemEventDetails(EventDetails):
    component: str | None = Field(default=None, description="Emitting component")
    description: str | None = None


class DataAccessDetails(EventDetails):
    record_id: str | None = Field(default=None, description="Accessed record")
    field_names: list[str] | None = Field(default=None, description="Fields read")
    purpose: str | None = None


class DataModificationDetails(EventDetails):
    record_id: str | None = Field(default=None, description="Modified record")
    changes: dict[str, Any] | None = Field(
        default=None, description="Field name to new value"
    )
    previous_values: dict[str, Any] | None = None


class AuthenticationDetails(EventDetails):
    method: str | None = Field(default=None, description="password, wallet, oauth, ...")
    mfa_used: bool | None = None
    failure_reason: str | None = None


class AuthorizationDetails(EventDetails):
    permission: str | None = None
    granted: bool | None = None
    role: str | None = None


class ComplianceCheckDetails(EventDetails):
    check_name: str | None = Field(default=None, description="e.g. kyc_review")
    outcome: str | None = None
    jurisdiction: str | None = None
    reviewer_id: str | None = None


class ConfigurationChangeDetails(EventDetails):
    key: str | None = Field(default=None, description="Changed setting")
    old_value: Any = None
    new_value: Any = None


class ErrorDetails(EventDetails):
    error_code: str | None = None
    message: str | None = None


class SecurityIncidentDetails(EventDetails):
    indicator: str | None = Field(default=None, description="What triggered the incident")
    description: str | None = None
    mitigated: bool | None = None


DETAILS_BY_EVENT_TYPE: dict[AuditEventType, type[EventDetails]] = {
    AuditEventType.USER_ACTION: UserActionDetails,
    AuditEventType.SYSTEM_EVENT: SystemEventDetails,
    AuditEventType.DATA_ACCESS: DataAccessDetails,
    AuditEventType.DATA_MODIFICATION: DataModificationDetails,
    AuditEventType.AUTHENTICATION: AuthenticationDetails,
    AuditEventType.AUTHORIZATION: AuthorizationDetails,
    AuditEventType.COMPLIANCE_CHECK: ComplianceCheckDetails,
    AuditEventType.CONFIGURATION_CHANGE: ConfigurationChangeDetails,
    AuditEventType.ERROR: ErrorDetails,
    AuditEventType.SECURITY_INCIDENT: SecurityIncidentDetails,
}


def normalize_details(
    event_type: AuditEventType, details: dict[str, Any] | EventDetails
) -> dict[str, Any]:
    """Validate details against the variant for event_type.

    Returns the plain mapping that gets stored and hashed. Only keys the
    caller supplied are kept, so unset optional fields never appear.
    """
    variant = DETAILS_BY_EVENT_TYPE[event_type]
    if isinstance(details, EventDetails):
        if not isinstance(details, variant):
            raise ValueError(
                f"{type(details).__name__} does not match event type {event_type.value}"
            )
        model = details
    else:
        model = variant.model_validate(details)
    return model.model_dump(mode="json", exclude_unset=True)
