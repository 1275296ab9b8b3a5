"""Corrective action API endpoints."""

from fastapi import APIRouter, status

from ovr.api.deps import CurrentPrincipal, DbSession, PrincipalOrToken
from ovr.models.corrective_action import CorrectiveAction
from ovr.schemas.corrective_action import (
    ChecklistItemRead,
    CorrectiveActionCreate,
    CorrectiveActionRead,
    CorrectiveActionUpdate,
)
from ovr.services.checklist import get_checklist_progress, parse_checklist
from ovr.services.corrective_action import CorrectiveActionService

router = APIRouter(prefix="/corrective-actions", tags=["corrective-actions"])


def to_corrective_action_read(action: CorrectiveAction) -> CorrectiveActionRead:
    """Build the response model, with the checklist decoded."""
    read = CorrectiveActionRead.model_validate(action)
    read.checklist_items = [
        ChecklistItemRead.model_validate(item) for item in parse_checklist(action.checklist)
    ]
    read.checklist_progress = get_checklist_progress(action.checklist)
    return read


@router.post(
    "", response_model=CorrectiveActionRead, status_code=status.HTTP_201_CREATED
)
async def create_corrective_action(
    request: CorrectiveActionCreate,
    db: DbSession,
    principal: CurrentPrincipal,
) -> CorrectiveActionRead:
    """Raise a corrective action on an incident."""
    action = await CorrectiveActionService(db).create_corrective_action(
        principal,
        incident_id=request.ovr_report_id,
        title=request.title,
        description=request.description,
        due_date=request.due_date,
        checklist=request.checklist,
        assigned_to=request.assigned_to,
    )
    return to_corrective_action_read(action)


@router.get("/{action_id}", response_model=CorrectiveActionRead)
async def get_corrective_action(
    action_id: int,
    db: DbSession,
    caller: PrincipalOrToken,
) -> CorrectiveActionRead:
    """Get a corrective action by role, shared-access token or bound invitation."""
    principal, token = caller
    action = await CorrectiveActionService(db).get_corrective_action(
        action_id, principal, token
    )
    return to_corrective_action_read(action)


@router.patch("/{action_id}", response_model=CorrectiveActionRead)
async def update_corrective_action(
    action_id: int,
    request: CorrectiveActionUpdate,
    db: DbSession,
    caller: PrincipalOrToken,
) -> CorrectiveActionRead:
    """Update the checklist, the action taken or the evidence files."""
    principal, token = caller
    action = await CorrectiveActionService(db).update_corrective_action(
        action_id,
        principal,
        token,
        checklist=request.checklist,
        action_taken=request.action_taken,
        evidence_files=request.evidence_files,
    )
    return to_corrective_action_read(action)


@router.post(
    "/{action_id}/checklist/{item_id}/toggle", response_model=CorrectiveActionRead
)
async def toggle_checklist_item(
    action_id: int,
    item_id: str,
    db: DbSession,
    caller: PrincipalOrToken,
) -> CorrectiveActionRead:
    """Flip one checklist item."""
    principal, token = caller
    action = await CorrectiveActionService(db).toggle_item(
        action_id, item_id, principal, token
    )
    return to_corrective_action_read(action)


@router.post("/{action_id}/close", response_model=CorrectiveActionRead)
async def close_corrective_action(
    action_id: int,
    db: DbSession,
    principal: CurrentPrincipal,
) -> CorrectiveActionRead:
    """Close a corrective action whose checklist is complete."""
    action = await CorrectiveActionService(db).close_corrective_action(
        action_id, principal
    )
    return to_corrective_action_read(action)
