"""Shared access invitations for external collaborators.

An invitation grants one email address access to exactly one investigation
or corrective action, through an opaque token or, once accepted, through the
collaborator's own login.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ovr.db.base import Base, TimestampMixin
from ovr.utils.time import utc_now


class SharedAccessResourceType(str, Enum):
    """Resources that can be shared."""
    INVESTIGATION = "investigation"
    CORRECTIVE_ACTION = "corrective_action"


class SharedAccessRole(str, Enum):
    """Role label shown to the invited collaborator."""
    INVESTIGATOR = "investigator"
    ACTION_HANDLER = "action_handler"
    VIEWER = "viewer"


class SharedAccessStatus(str, Enum):
    """Invitation lifecycle states."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    REVOKED = "revoked"


DEFAULT_ROLE_FOR_RESOURCE: dict[SharedAccessResourceType, SharedAccessRole] = {
    SharedAccessResourceType.INVESTIGATION: SharedAccessRole.INVESTIGATOR,
    SharedAccessResourceType.CORRECTIVE_ACTION: SharedAccessRole.ACTION_HANDLER,
}


class SharedAccessInvitation(Base, TimestampMixin):
    """Token-scoped grant to a single investigation or corrective action."""

    __tablename__ = "shared_access_invitations"

    resource_type: Mapped[str] = mapped_column(String(30), nullable=False)
    resource_id: Mapped[int] = mapped_column(Integer, nullable=False)
    incident_id: Mapped[str] = mapped_column(
        String(20), ForeignKey("incidents.id"), nullable=False, index=True
    )

    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    user_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    role: Mapped[str] = mapped_column(String(30), nullable=False)

    access_token: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    token_expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    status: Mapped[str] = mapped_column(
        String(20), default=SharedAccessStatus.PENDING.value, nullable=False
    )

    invited_by: Mapped[int] = mapped_column(Integer, nullable=False)
    invited_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    accepted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    revoked_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    revoked_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_accessed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        Index(
            "ix_shared_access_invitations_resource",
            "resource_type",
            "resource_id",
        ),
    )

    @property
    def is_revoked(self) -> bool:
        """Revocation is permanent."""
        return self.status == SharedAccessStatus.REVOKED.value

    @property
    def is_accepted(self) -> bool:
        """Only accepted invitations grant access."""
        return self.status == SharedAccessStatus.ACCEPTED.value

    def __repr__(self) -> str:
        return f"<SharedAccessInvitation {self.resource_type}:{self.resource_id} {self.email}>"
