"""Shared access invitation schemas."""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from ovr.models.shared_access import (
    SharedAccessResourceType,
    SharedAccessRole,
    SharedAccessStatus,
)
from ovr.schemas.common import CamelRequest, NonBlankStr


class InvitationCreate(CamelRequest):
    """Schema for inviting one collaborator."""

    resource_type: SharedAccessResourceType
    resource_id: int = Field(..., gt=0)
    ovr_report_id: NonBlankStr
    email: EmailStr
    role: SharedAccessRole | None = None
    token_expires_at: datetime | None = None


class InviteeEntry(CamelRequest):
    """One entry of a bulk invitation."""

    email: EmailStr
    role: SharedAccessRole | None = None


class BulkInvitationCreate(CamelRequest):
    """Schema for inviting several collaborators to one resource."""

    resource_type: SharedAccessResourceType
    resource_id: int = Field(..., gt=0)
    ovr_report_id: NonBlankStr
    invitations: list[InviteeEntry] = Field(..., min_length=1)
    token_expires_at: datetime | None = None


class InvitationAccept(CamelRequest):
    """Schema for accepting an invitation with its token."""

    token: NonBlankStr
    resource_type: SharedAccessResourceType
    resource_id: int = Field(..., gt=0)


class InvitationRead(BaseModel):
    """Schema for reading an invitation (token omitted)."""

    id: int
    resource_type: SharedAccessResourceType
    resource_id: int
    incident_id: str
    email: str
    user_id: int | None
    role: SharedAccessRole
    status: SharedAccessStatus
    token_expires_at: datetime | None
    invited_by: int
    invited_at: datetime
    accepted_at: datetime | None
    revoked_by: int | None
    revoked_at: datetime | None
    last_accessed_at: datetime | None

    model_config = {"from_attributes": True}


class InvitationCreated(BaseModel):
    """Created invitation together with its access link and token."""

    invitation: InvitationRead
    access_token: str
    access_url: str


class BulkInvitationCreated(BaseModel):
    """Result of a bulk invitation."""

    message: str
    invitations: list[InvitationCreated]
