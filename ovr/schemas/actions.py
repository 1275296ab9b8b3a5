"""Workflow action payload schemas.

One schema per action. Payloads arrive with camelCase keys from the web
client; snake_case field names are accepted too.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from ovr.models.incident import SeverityLevel
from ovr.schemas.common import CamelRequest, NonBlankStr


class ActionType(str, Enum):
    """Incident workflow actions."""

    SUPERVISOR_APPROVE = "supervisor-approve"
    QI_ASSIGN_HOD = "qi-assign-hod"
    QI_CLOSE = "qi-close"
    ASSIGN_INVESTIGATOR = "assign-investigator"
    SUBMIT_FINDINGS = "submit-findings"
    HOD_SUBMIT = "hod-submit"


class ActionPayload(CamelRequest):
    """Base for action payloads."""


class SupervisorApprovalData(ActionPayload):
    """Supervisor approval (retired step, kept for compatibility)."""

    action: NonBlankStr


class QIAssignHODData(ActionPayload):
    """QI assigns the department head who will investigate."""

    department_head_id: int = Field(..., gt=0)


class AssignInvestigatorData(ActionPayload):
    """Assign an additional investigator to the incident."""

    investigator_id: int = Field(..., gt=0)


class SubmitFindingsData(ActionPayload):
    """Investigator findings."""

    findings: NonBlankStr


class HODSubmissionData(ActionPayload):
    """Department head investigation report."""

    investigation_findings: NonBlankStr
    problems_identified: NonBlankStr
    cause_classification: NonBlankStr
    cause_details: str | None = None
    prevention_recommendation: NonBlankStr


class QIFeedbackData(ActionPayload):
    """QI final review and closure."""

    feedback: NonBlankStr
    form_complete: bool = False
    cause_identified: bool = False
    timeframe: bool = False
    action_complies: bool = False
    effective_action: bool = False
    severity_level: SeverityLevel


ACTION_SCHEMAS: dict[ActionType, type[ActionPayload]] = {
    ActionType.SUPERVISOR_APPROVE: SupervisorApprovalData,
    ActionType.QI_ASSIGN_HOD: QIAssignHODData,
    ActionType.QI_CLOSE: QIFeedbackData,
    ActionType.ASSIGN_INVESTIGATOR: AssignInvestigatorData,
    ActionType.SUBMIT_FINDINGS: SubmitFindingsData,
    ActionType.HOD_SUBMIT: HODSubmissionData,
}


class ActionRequest(BaseModel):
    """Body of ``POST /incidents/{id}/actions``.

    ``action`` stays a plain string here so an unknown action name is
    reported by the dispatcher as a field-level validation error.
    """

    action: str
    data: dict[str, Any] = Field(default_factory=dict)


class AvailableActionsResponse(BaseModel):
    """Actions the caller could perform right now."""

    incident_id: str
    actions: list[ActionType]
