"""Permission checks for incident workflow actions.

An action is allowed only when both checks pass:

1. the incident is in one of the statuses listed for the action, and
2. the per-action predicate accepts the principal (role membership, plus a
   relationship check for ``submit-findings`` and ``hod-submit``).

Both failures raise ``AuthorizationError`` with distinct messages.
"""

from types import MappingProxyType
from typing import Callable, Mapping

from ovr.models.incident import Incident, IncidentStatus
from ovr.schemas.actions import ActionType
from ovr.services.errors import AuthorizationError, OVRError
from ovr.services.rbac import QI_CLOSE_ROLES, Principal, UserRole

PermissionValidator = Callable[[Principal, Incident], bool]

# supervisor-approve is retired: no status satisfies it
STATUS_REQUIREMENTS: Mapping[ActionType, frozenset[IncidentStatus]] = MappingProxyType(
    {
        ActionType.SUPERVISOR_APPROVE: frozenset(),
        ActionType.QI_ASSIGN_HOD: frozenset({IncidentStatus.HOD_ASSIGNED}),
        ActionType.ASSIGN_INVESTIGATOR: frozenset({IncidentStatus.HOD_ASSIGNED}),
        ActionType.SUBMIT_FINDINGS: frozenset({IncidentStatus.HOD_ASSIGNED}),
        ActionType.HOD_SUBMIT: frozenset({IncidentStatus.HOD_ASSIGNED}),
        ActionType.QI_CLOSE: frozenset({IncidentStatus.QI_FINAL_REVIEW}),
    }
)

SUPERVISOR_APPROVE_ROLES = frozenset(
    {
        UserRole.SUPER_ADMIN,
        UserRole.SUPERVISOR,
        UserRole.TEAM_LEAD,
        UserRole.DEPARTMENT_HEAD,
        UserRole.DEVELOPER,
    }
)

QI_ASSIGN_HOD_ROLES = frozenset(
    {
        UserRole.SUPER_ADMIN,
        UserRole.QUALITY_MANAGER,
        UserRole.QUALITY_ANALYST,
        UserRole.DEVELOPER,
    }
)

ASSIGN_INVESTIGATOR_ROLES = frozenset(
    {
        UserRole.SUPER_ADMIN,
        UserRole.QUALITY_MANAGER,
        UserRole.DEPARTMENT_HEAD,
        UserRole.DEVELOPER,
    }
)

# May submit the HOD report without being the assigned department head
HOD_SUBMIT_OVERRIDE_ROLES = frozenset(
    {
        UserRole.SUPER_ADMIN,
        UserRole.ASSISTANT_DEPT_HEAD,
        UserRole.DEVELOPER,
    }
)


def _requires_roles(allowed: frozenset[UserRole]) -> PermissionValidator:
    def validator(principal: Principal, incident: Incident) -> bool:
        return principal.has_any_role(allowed)

    return validator


def _is_assigned_investigator(principal: Principal, incident: Incident) -> bool:
    return incident.is_assigned_investigator(principal.id)


def _is_hod_or_override(principal: Principal, incident: Incident) -> bool:
    if incident.department_head_id == principal.id:
        return True
    return principal.has_any_role(HOD_SUBMIT_OVERRIDE_ROLES)


PERMISSION_VALIDATORS: Mapping[ActionType, PermissionValidator] = MappingProxyType(
    {
        ActionType.SUPERVISOR_APPROVE: _requires_roles(SUPERVISOR_APPROVE_ROLES),
        ActionType.QI_ASSIGN_HOD: _requires_roles(QI_ASSIGN_HOD_ROLES),
        ActionType.QI_CLOSE: _requires_roles(QI_CLOSE_ROLES),
        ActionType.ASSIGN_INVESTIGATOR: _requires_roles(ASSIGN_INVESTIGATOR_ROLES),
        ActionType.SUBMIT_FINDINGS: _is_assigned_investigator,
        ActionType.HOD_SUBMIT: _is_hod_or_override,
    }
)


def _status_message(action: ActionType, allowed: frozenset[IncidentStatus]) -> str:
    if not allowed:
        return f"Action {action.value} is disabled"
    # Enum declaration order keeps the message stable
    names = [status.value for status in IncidentStatus if status in allowed]
    return f"Incident must be in {' or '.join(names)} status to perform this action"


def validate_action_permission(
    principal: Principal,
    incident: Incident,
    action: ActionType,
) -> None:
    """Check that a principal may perform an action on an incident.

    Args:
        principal: Acting principal
        incident: Incident snapshot (with investigators loaded for
            ``submit-findings``)
        action: Requested action

    Raises:
        AuthorizationError: If the status precondition or the role check fails
    """
    allowed_statuses = STATUS_REQUIREMENTS[action]
    if incident.status not in {status.value for status in allowed_statuses}:
        raise AuthorizationError(_status_message(action, allowed_statuses))

    validator = PERMISSION_VALIDATORS[action]
    if not validator(principal, incident):
        raise AuthorizationError(
            f"You do not have permission to perform: {action.value}"
        )


def can_perform_action(
    principal: Principal,
    incident: Incident,
    action: ActionType,
) -> bool:
    """Non-raising variant of ``validate_action_permission`` for UI hints."""
    try:
        validate_action_permission(principal, incident, action)
    except OVRError:
        return False
    return True
