"""Investigation API endpoints.

Reads and updates accept either a bearer token or a ``?token=`` shared
access token.
"""

from fastapi import APIRouter, status

from ovr.api.deps import CurrentPrincipal, DbSession, PrincipalOrToken
from ovr.schemas.investigation import (
    InvestigationCreate,
    InvestigationRead,
    InvestigationSubmit,
    InvestigationUpdate,
)
from ovr.services.investigation import InvestigationService

router = APIRouter(prefix="/investigations", tags=["investigations"])


@router.post("", response_model=InvestigationRead, status_code=status.HTTP_201_CREATED)
async def create_investigation(
    request: InvestigationCreate,
    db: DbSession,
    principal: CurrentPrincipal,
) -> InvestigationRead:
    """Open the investigation for an incident."""
    investigation = await InvestigationService(db).create_investigation(
        principal, request.ovr_report_id, request.investigators
    )
    return InvestigationRead.model_validate(investigation)


@router.get("/{investigation_id}", response_model=InvestigationRead)
async def get_investigation(
    investigation_id: int,
    db: DbSession,
    caller: PrincipalOrToken,
) -> InvestigationRead:
    """Get an investigation by role, shared-access token or bound invitation."""
    principal, token = caller
    investigation = await InvestigationService(db).get_investigation(
        investigation_id, principal, token
    )
    return InvestigationRead.model_validate(investigation)


@router.patch("/{investigation_id}", response_model=InvestigationRead)
async def update_investigation(
    investigation_id: int,
    request: InvestigationUpdate,
    db: DbSession,
    caller: PrincipalOrToken,
) -> InvestigationRead:
    """Save investigation progress."""
    principal, token = caller
    investigation = await InvestigationService(db).update_investigation(
        investigation_id, request, principal, token
    )
    return InvestigationRead.model_validate(investigation)


@router.post("/{investigation_id}/submit", response_model=InvestigationRead)
async def submit_investigation(
    investigation_id: int,
    request: InvestigationSubmit,
    db: DbSession,
    caller: PrincipalOrToken,
) -> InvestigationRead:
    """Submit final investigation findings."""
    principal, token = caller
    investigation = await InvestigationService(db).submit_investigation(
        investigation_id, request, principal, token
    )
    return InvestigationRead.model_validate(investigation)
