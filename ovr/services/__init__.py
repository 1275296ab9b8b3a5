"""Business logic services."""

from ovr.services.corrective_action import CorrectiveActionService
from ovr.services.errors import (
    AuthorizationError,
    NotFoundError,
    OVRError,
    ValidationError,
)
from ovr.services.incident import IncidentService
from ovr.services.incident_actions import IncidentActionService
from ovr.services.investigation import InvestigationService
from ovr.services.rbac import Principal, UserRole
from ovr.services.shared_access import SharedAccessService
from ovr.services.visibility import IncidentQueryService

__all__ = [
    "AuthorizationError",
    "CorrectiveActionService",
    "IncidentActionService",
    "IncidentQueryService",
    "IncidentService",
    "InvestigationService",
    "NotFoundError",
    "OVRError",
    "Principal",
    "SharedAccessService",
    "UserRole",
    "ValidationError",
]
