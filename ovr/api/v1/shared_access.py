"""Shared access API endpoints (QI invitation management)."""

from fastapi import APIRouter, status

from ovr.api.deps import CurrentPrincipal, DbSession, OptionalPrincipal
from ovr.models.shared_access import SharedAccessInvitation, SharedAccessResourceType
from ovr.schemas.shared_access import (
    BulkInvitationCreate,
    BulkInvitationCreated,
    InvitationAccept,
    InvitationCreate,
    InvitationCreated,
    InvitationRead,
)
from ovr.services.shared_access import SharedAccessService

router = APIRouter(prefix="/shared-access", tags=["shared-access"])


def _created(invitation: SharedAccessInvitation, access_url: str) -> InvitationCreated:
    return InvitationCreated(
        invitation=InvitationRead.model_validate(invitation),
        access_token=invitation.access_token,
        access_url=access_url,
    )


@router.post("", response_model=InvitationCreated, status_code=status.HTTP_201_CREATED)
async def create_invitation(
    request: InvitationCreate,
    db: DbSession,
    principal: CurrentPrincipal,
) -> InvitationCreated:
    """Invite one collaborator to an investigation or corrective action."""
    invitation, access_url = await SharedAccessService(db).create_invitation(
        principal,
        resource_type=request.resource_type,
        resource_id=request.resource_id,
        incident_id=request.ovr_report_id,
        email=request.email,
        role=request.role,
        expires_at=request.token_expires_at,
    )
    return _created(invitation, access_url)


@router.put(
    "", response_model=BulkInvitationCreated, status_code=status.HTTP_201_CREATED
)
async def bulk_create_invitations(
    request: BulkInvitationCreate,
    db: DbSession,
    principal: CurrentPrincipal,
) -> BulkInvitationCreated:
    """Invite several collaborators to one resource."""
    created = await SharedAccessService(db).bulk_create_invitations(
        principal,
        resource_type=request.resource_type,
        resource_id=request.resource_id,
        incident_id=request.ovr_report_id,
        invitations=[(entry.email, entry.role) for entry in request.invitations],
        expires_at=request.token_expires_at,
    )
    return BulkInvitationCreated(
        message=f"{len(created)} invitations created successfully",
        invitations=[_created(invitation, url) for invitation, url in created],
    )


@router.get("", response_model=list[InvitationRead])
async def list_invitations(
    resource_type: SharedAccessResourceType,
    resource_id: int,
    db: DbSession,
    principal: CurrentPrincipal,
) -> list[InvitationRead]:
    """List invitations for a resource."""
    invitations = await SharedAccessService(db).list_invitations(
        principal, resource_type, resource_id
    )
    return [InvitationRead.model_validate(i) for i in invitations]


@router.post("/accept", response_model=InvitationRead)
async def accept_invitation(
    request: InvitationAccept,
    db: DbSession,
    principal: OptionalPrincipal,
) -> InvitationRead:
    """Accept an invitation with its token (binds the caller if logged in)."""
    invitation = await SharedAccessService(db).accept_invitation(
        request.token,
        request.resource_type,
        request.resource_id,
        principal,
    )
    return InvitationRead.model_validate(invitation)


@router.delete("/{access_id}", response_model=InvitationRead)
async def revoke_invitation(
    access_id: int,
    db: DbSession,
    principal: CurrentPrincipal,
) -> InvitationRead:
    """Permanently revoke an invitation."""
    invitation = await SharedAccessService(db).revoke_invitation(principal, access_id)
    return InvitationRead.model_validate(invitation)
