"""Incident workflow action handlers.

Every handler has the same signature::

    async def handler(session, incident, data, principal) -> result

and performs exactly one write (a single commit). Permission and status
checks happen before a handler runs; handlers only apply the transition.
"""

import logging
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Mapping

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ovr.models.incident import (
    Incident,
    IncidentInvestigator,
    IncidentStatus,
    InvestigatorStatus,
)
from ovr.schemas.actions import (
    ActionPayload,
    ActionType,
    AssignInvestigatorData,
    HODSubmissionData,
    QIAssignHODData,
    QIFeedbackData,
    SubmitFindingsData,
    SupervisorApprovalData,
)
from ovr.services.errors import ValidationError
from ovr.services.notifications import notify
from ovr.services.rbac import Principal
from ovr.utils.time import utc_now

logger = logging.getLogger(__name__)

ActionHandler = Callable[
    [AsyncSession, Incident, ActionPayload, Principal], Awaitable[Any]
]


async def handle_supervisor_approve(
    session: AsyncSession,
    incident: Incident,
    data: SupervisorApprovalData,
    principal: Principal,
) -> Incident:
    """Record supervisor approval (submitted -> supervisor_approved).

    Unreachable through dispatch: the action has no allowed status.
    """
    now = utc_now()
    incident.supervisor_id = principal.id
    incident.supervisor_action = data.action
    incident.supervisor_action_date = now
    incident.supervisor_approved_at = now
    incident.status = IncidentStatus.SUPERVISOR_APPROVED.value

    await session.commit()
    await session.refresh(incident)
    return incident


async def handle_qi_assign_hod(
    session: AsyncSession,
    incident: Incident,
    data: QIAssignHODData,
    principal: Principal,
) -> Incident:
    """Assign the department head. Status stays hod_assigned."""
    now = utc_now()
    incident.qi_received_by = principal.id
    incident.qi_received_date = now
    incident.qi_assigned_by = principal.id
    incident.qi_assigned_date = now
    incident.department_head_id = data.department_head_id
    incident.hod_assigned_at = now
    incident.status = IncidentStatus.HOD_ASSIGNED.value

    await session.commit()
    await session.refresh(incident)

    notify("hod_assigned", incident.id, [data.department_head_id], principal.id)
    return incident


async def handle_assign_investigator(
    session: AsyncSession,
    incident: Incident,
    data: AssignInvestigatorData,
    principal: Principal,
) -> IncidentInvestigator:
    """Create a pending investigator assignment.

    Raises:
        ValidationError: If the investigator is already assigned
    """
    if incident.is_assigned_investigator(data.investigator_id):
        raise ValidationError("This investigator is already assigned to this incident")

    assignment = IncidentInvestigator(
        incident_id=incident.id,
        investigator_id=data.investigator_id,
        assigned_by=principal.id,
        status=InvestigatorStatus.PENDING.value,
    )
    session.add(assignment)

    try:
        await session.commit()
    except IntegrityError as e:
        # Lost a race with a concurrent assignment of the same investigator
        await session.rollback()
        raise ValidationError(
            "This investigator is already assigned to this incident"
        ) from e

    await session.refresh(assignment)

    notify("investigator_assigned", incident.id, [data.investigator_id], principal.id)
    return assignment


async def handle_submit_findings(
    session: AsyncSession,
    incident: Incident,
    data: SubmitFindingsData,
    principal: Principal,
) -> IncidentInvestigator:
    """Store the calling investigator's findings.

    Raises:
        ValidationError: If the caller has no assignment or already submitted
    """
    assignment = next(
        (
            inv
            for inv in incident.investigators or []
            if inv.investigator_id == principal.id
        ),
        None,
    )
    if assignment is None:
        raise ValidationError("You are not assigned as an investigator for this incident")

    if assignment.status == InvestigatorStatus.SUBMITTED.value:
        raise ValidationError("Findings have already been submitted")

    assignment.findings = data.findings
    assignment.status = InvestigatorStatus.SUBMITTED.value
    assignment.submitted_at = utc_now()

    await session.commit()
    await session.refresh(assignment)

    notify("findings_submitted", incident.id, [incident.department_head_id], principal.id)
    return assignment


async def handle_hod_submit(
    session: AsyncSession,
    incident: Incident,
    data: HODSubmissionData,
    principal: Principal,
) -> Incident:
    """Record the HOD report (hod_assigned -> qi_final_review)."""
    now = utc_now()
    incident.investigation_findings = data.investigation_findings
    incident.problems_identified = data.problems_identified
    incident.cause_classification = data.cause_classification
    incident.cause_details = data.cause_details
    incident.prevention_recommendation = data.prevention_recommendation
    incident.hod_action_date = now
    incident.hod_submitted_at = now
    incident.status = IncidentStatus.QI_FINAL_REVIEW.value

    await session.commit()
    await session.refresh(incident)

    notify("hod_submitted", incident.id, actor_id=principal.id)
    return incident


async def handle_qi_close(
    session: AsyncSession,
    incident: Incident,
    data: QIFeedbackData,
    principal: Principal,
) -> Incident:
    """Close the incident with QI feedback (qi_final_review -> closed)."""
    incident.qi_feedback = data.feedback
    incident.qi_form_complete = data.form_complete
    incident.qi_proper_cause_identified = data.cause_identified
    incident.qi_proper_timeframe = data.timeframe
    incident.qi_action_complies_standards = data.action_complies
    incident.qi_effective_corrective_action = data.effective_action
    incident.severity_level = data.severity_level.value
    incident.closed_at = utc_now()
    incident.status = IncidentStatus.CLOSED.value

    await session.commit()
    await session.refresh(incident)

    notify(
        "incident_closed",
        incident.id,
        [incident.reporter_id, incident.department_head_id],
        principal.id,
    )
    return incident


ACTION_HANDLERS: Mapping[ActionType, ActionHandler] = MappingProxyType(
    {
        ActionType.SUPERVISOR_APPROVE: handle_supervisor_approve,
        ActionType.QI_ASSIGN_HOD: handle_qi_assign_hod,
        ActionType.QI_CLOSE: handle_qi_close,
        ActionType.ASSIGN_INVESTIGATOR: handle_assign_investigator,
        ActionType.SUBMIT_FINDINGS: handle_submit_findings,
        ActionType.HOD_SUBMIT: handle_hod_submit,
    }
)
