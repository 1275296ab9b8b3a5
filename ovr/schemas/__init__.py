"""Pydantic schemas for request/response validation."""

from ovr.schemas.actions import (
    ACTION_SCHEMAS,
    ActionPayload,
    ActionRequest,
    ActionType,
    AvailableActionsResponse,
)
from ovr.schemas.corrective_action import (
    ChecklistItemRead,
    CorrectiveActionCreate,
    CorrectiveActionRead,
    CorrectiveActionUpdate,
)
from ovr.schemas.incident import (
    IncidentCreate,
    IncidentListResponse,
    IncidentRead,
    InvestigatorAssignmentRead,
)
from ovr.schemas.investigation import (
    InvestigationCreate,
    InvestigationRead,
    InvestigationSubmit,
    InvestigationUpdate,
)
from ovr.schemas.shared_access import (
    BulkInvitationCreate,
    BulkInvitationCreated,
    InvitationAccept,
    InvitationCreate,
    InvitationCreated,
    InvitationRead,
)

__all__ = [
    "ACTION_SCHEMAS",
    "ActionPayload",
    "ActionRequest",
    "ActionType",
    "AvailableActionsResponse",
    "ChecklistItemRead",
    "CorrectiveActionCreate",
    "CorrectiveActionRead",
    "CorrectiveActionUpdate",
    "IncidentCreate",
    "IncidentListResponse",
    "IncidentRead",
    "InvestigatorAssignmentRead",
    "InvestigationCreate",
    "InvestigationRead",
    "InvestigationSubmit",
    "InvestigationUpdate",
    "BulkInvitationCreate",
    "BulkInvitationCreated",
    "InvitationAccept",
    "InvitationCreate",
    "InvitationCreated",
    "InvitationRead",
]
