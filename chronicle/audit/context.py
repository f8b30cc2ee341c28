"""Caller capability passed into every audit operation.

Identity and role checks happen in the caller (HTTP layer, job runner,
...). The caller then hands the audit service an AuditContext naming what
it is allowed to do; the service only checks that the needed permission is
present.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from chronicle.audit.errors import AuthorizationError


class AuditPermission(str, Enum):
    """Operations a caller may be granted."""

    WRITE = "write"
    READ = "read"
    VERIFY = "verify"
    EXPORT = "export"


class AuditContext(BaseModel):
    """Capability granted to one caller."""

    model_config = ConfigDict(frozen=True)

    actor_id: str = Field(..., min_length=1, description="Who is calling")
    permissions: frozenset[AuditPermission] = Field(default_factory=frozenset)

    @classmethod
    def system(cls) -> "AuditContext":
        """Context for internal producers that only append events."""
        return cls(actor_id="system", permissions=frozenset({AuditPermission.WRITE}))

    @classmethod
    def admin(cls, actor_id: str) -> "AuditContext":
        """Context holding every permission."""
        return cls(actor_id=actor_id, permissions=frozenset(AuditPermission))

    def allows(self, permission: AuditPermission) -> bool:
        return permission in self.permissions

    def require(self, permission: AuditPermission) -> None:
        """Raise AuthorizationError unless permission is granted."""
        if not self.allows(permission):
            raise AuthorizationError(
                f"{self.actor_id} lacks the '{permission.value}' audit permission",
                permission=permission.value,
            )
