"""Incident API endpoints: intake, secure reads and workflow actions."""

from typing import Annotated, Optional

from fastapi import APIRouter, Query, status

from ovr.api.deps import CurrentPrincipal, DbSession
from ovr.api.v1.corrective_actions import to_corrective_action_read
from ovr.models.incident import IncidentInvestigator
from ovr.schemas.actions import ActionRequest, AvailableActionsResponse
from ovr.schemas.corrective_action import CorrectiveActionRead
from ovr.schemas.incident import (
    IncidentCreate,
    IncidentListResponse,
    IncidentRead,
    InvestigatorAssignmentRead,
)
from ovr.schemas.investigation import InvestigationRead
from ovr.services.incident import IncidentService
from ovr.services.incident_actions import IncidentActionService
from ovr.services.visibility import IncidentQueryService

router = APIRouter(prefix="/incidents", tags=["incidents"])


@router.post("", response_model=IncidentRead, status_code=status.HTTP_201_CREATED)
async def create_incident(
    request: IncidentCreate,
    db: DbSession,
    principal: CurrentPrincipal,
) -> IncidentRead:
    """Report a new incident (saved as a draft unless ``submit`` is set)."""
    service = IncidentService(db)
    incident = await service.create_incident(
        principal,
        title=request.title,
        description=request.description,
        submit=request.submit,
    )
    return IncidentRead.model_validate(incident)


@router.get("", response_model=IncidentListResponse)
async def list_incidents(
    db: DbSession,
    principal: CurrentPrincipal,
    include_drafts: bool = False,
    my_reports_only: bool = False,
    status_filter: Annotated[Optional[str], Query(alias="status")] = None,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> IncidentListResponse:
    """List incidents visible to the caller."""
    service = IncidentQueryService(db)
    incidents, total = await service.list_incidents(
        principal,
        include_drafts=include_drafts,
        my_reports_only=my_reports_only,
        status=status_filter,
        limit=limit,
        offset=offset,
    )
    return IncidentListResponse(
        items=[IncidentRead.model_validate(i) for i in incidents],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/drafts", response_model=list[IncidentRead])
async def list_drafts(
    db: DbSession,
    principal: CurrentPrincipal,
) -> list[IncidentRead]:
    """List the caller's own drafts."""
    drafts = await IncidentQueryService(db).list_drafts(principal)
    return [IncidentRead.model_validate(d) for d in drafts]


@router.get("/{incident_id}", response_model=IncidentRead)
async def get_incident(
    incident_id: str,
    db: DbSession,
    principal: CurrentPrincipal,
) -> IncidentRead:
    """Get an incident the caller may see."""
    incident = await IncidentQueryService(db).get_incident_secure(incident_id, principal)
    return IncidentRead.model_validate(incident)


@router.post("/{incident_id}/submit", response_model=IncidentRead)
async def submit_incident(
    incident_id: str,
    db: DbSession,
    principal: CurrentPrincipal,
) -> IncidentRead:
    """Submit one of the caller's drafts into the workflow."""
    incident = await IncidentService(db).submit_draft(principal, incident_id)
    return IncidentRead.model_validate(incident)


@router.post(
    "/{incident_id}/actions",
    response_model=IncidentRead | InvestigatorAssignmentRead,
)
async def perform_action(
    incident_id: str,
    request: ActionRequest,
    db: DbSession,
    principal: CurrentPrincipal,
) -> IncidentRead | InvestigatorAssignmentRead:
    """Perform a workflow action on an incident."""
    service = IncidentActionService(db)
    result = await service.dispatch(principal, incident_id, request.action, request.data)

    if isinstance(result, IncidentInvestigator):
        return InvestigatorAssignmentRead.model_validate(result)
    return IncidentRead.model_validate(result)


@router.get("/{incident_id}/actions", response_model=AvailableActionsResponse)
async def get_available_actions(
    incident_id: str,
    db: DbSession,
    principal: CurrentPrincipal,
) -> AvailableActionsResponse:
    """List workflow actions the caller can perform right now."""
    actions = await IncidentActionService(db).available_actions(principal, incident_id)
    return AvailableActionsResponse(incident_id=incident_id, actions=actions)


@router.get("/{incident_id}/investigations", response_model=list[InvestigationRead])
async def list_incident_investigations(
    incident_id: str,
    db: DbSession,
    principal: CurrentPrincipal,
) -> list[InvestigationRead]:
    """List investigations of a visible incident."""
    investigations = await IncidentQueryService(db).get_investigations_for_incident(
        incident_id, principal
    )
    return [InvestigationRead.model_validate(i) for i in investigations]


@router.get(
    "/{incident_id}/corrective-actions", response_model=list[CorrectiveActionRead]
)
async def list_incident_corrective_actions(
    incident_id: str,
    db: DbSession,
    principal: CurrentPrincipal,
) -> list[CorrectiveActionRead]:
    """List corrective actions of a visible incident."""
    actions = await IncidentQueryService(db).get_corrective_actions_for_incident(
        incident_id, principal
    )
    return [to_corrective_action_read(a) for a in actions]
