"""Role taxonomy and principal.

Roles come from the hospital identity provider as plain strings. They are
parsed into ``UserRole`` once, at the edge, so every predicate downstream
works with a closed enumeration.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable


class UserRole(str, Enum):
    """Application roles."""

    SUPER_ADMIN = "super_admin"
    TECH_ADMIN = "tech_admin"
    DEVELOPER = "developer"
    CEO = "ceo"
    EXECUTIVE = "executive"
    QUALITY_MANAGER = "quality_manager"
    QUALITY_ANALYST = "quality_analyst"
    DEPARTMENT_HEAD = "department_head"
    ASSISTANT_DEPT_HEAD = "assistant_dept_head"
    SUPERVISOR = "supervisor"
    TEAM_LEAD = "team_lead"
    FACILITY_MANAGER = "facility_manager"
    EMPLOYEE = "employee"


# Visibility tiers
ELEVATED_VISIBILITY_ROLES = frozenset(
    {
        UserRole.SUPER_ADMIN,
        UserRole.DEVELOPER,
        UserRole.CEO,
        UserRole.EXECUTIVE,
        UserRole.QUALITY_MANAGER,
        UserRole.QUALITY_ANALYST,
    }
)

SUPERVISORY_VISIBILITY_ROLES = frozenset(
    {
        UserRole.SUPERVISOR,
        UserRole.TEAM_LEAD,
    }
)

# Direct access to investigations and corrective actions, no invitation needed
SHARED_RESOURCE_ROLES = frozenset(
    {
        UserRole.SUPER_ADMIN,
        UserRole.DEVELOPER,
        UserRole.QUALITY_MANAGER,
        UserRole.QUALITY_ANALYST,
    }
)

# May create, list and revoke invitations, and create investigations/actions
QI_STAFF_ROLES = SHARED_RESOURCE_ROLES

# May close corrective actions
QI_CLOSE_ROLES = frozenset(
    {
        UserRole.SUPER_ADMIN,
        UserRole.QUALITY_MANAGER,
        UserRole.DEVELOPER,
    }
)


def parse_roles(values: Iterable[Any] | None) -> frozenset[UserRole]:
    """Parse role strings, dropping anything unknown."""
    roles = set()
    for value in values or ():
        try:
            roles.add(UserRole(value))
        except ValueError:
            continue
    return frozenset(roles)


def has_any_role(roles: Iterable[UserRole], allowed: Iterable[UserRole]) -> bool:
    """Check if any of the given roles is in the allowed set."""
    allowed = frozenset(allowed)
    return any(role in allowed for role in roles)


@dataclass(frozen=True)
class Principal:
    """Authenticated actor issuing a request."""

    id: int
    roles: frozenset[UserRole] = field(default_factory=frozenset)
    email: str | None = None

    def has_any_role(self, allowed: Iterable[UserRole]) -> bool:
        """Check if the principal holds any of the allowed roles."""
        return has_any_role(self.roles, allowed)

    @property
    def is_elevated(self) -> bool:
        """Elevated visibility tier."""
        return self.has_any_role(ELEVATED_VISIBILITY_ROLES)

    @property
    def is_supervisory(self) -> bool:
        """Supervisory visibility tier."""
        return self.has_any_role(SUPERVISORY_VISIBILITY_ROLES)

    @classmethod
    def from_token_payload(cls, payload: dict) -> "Principal":
        """Build a principal from decoded bearer token claims.

        Args:
            payload: Decoded JWT claims (``sub``, ``roles``, ``email``)

        Returns:
            Principal

        Raises:
            ValueError: If ``sub`` is missing or not an integer id
        """
        subject = payload.get("sub")
        if subject is None:
            raise ValueError("Token has no subject")

        email = payload.get("email")
        return cls(
            id=int(subject),
            roles=parse_roles(payload.get("roles")),
            email=email.lower() if email else None,
        )
