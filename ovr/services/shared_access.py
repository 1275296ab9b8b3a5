"""Shared access for external collaborators.

QI staff invite a collaborator by email to one investigation or corrective
action. The invitation carries an opaque token; the collaborator accepts it
once, after which the token (or, for a logged-in collaborator, their user id
or email) grants access until it expires or is revoked.

Only ``accepted`` invitations grant access. Revocation is permanent.
"""

import logging
from datetime import datetime
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ovr.core.config import settings
from ovr.core.logging import audit_logger
from ovr.core.security import (
    generate_shared_access_token,
    is_token_expired,
    validate_token,
)
from ovr.models.corrective_action import CorrectiveAction
from ovr.models.investigation import Investigation
from ovr.models.shared_access import (
    DEFAULT_ROLE_FOR_RESOURCE,
    SharedAccessInvitation,
    SharedAccessResourceType,
    SharedAccessRole,
    SharedAccessStatus,
)
from ovr.services.errors import AuthorizationError, NotFoundError, ValidationError
from ovr.services.rbac import QI_STAFF_ROLES, SHARED_RESOURCE_ROLES, Principal
from ovr.utils.time import as_utc, utc_now

logger = logging.getLogger(__name__)

RESOURCE_MODELS = {
    SharedAccessResourceType.INVESTIGATION: Investigation,
    SharedAccessResourceType.CORRECTIVE_ACTION: CorrectiveAction,
}

RESOURCE_LABELS = {
    SharedAccessResourceType.INVESTIGATION: "Investigation",
    SharedAccessResourceType.CORRECTIVE_ACTION: "Corrective action",
}


def build_access_url(
    resource_type: SharedAccessResourceType, resource_id: int, token: str
) -> str:
    """Build the link sent to an invited collaborator."""
    base = settings.public_base_url.rstrip("/")
    return f"{base}/{resource_type.value}s/{resource_id}?token={token}"


def _require_qi_staff(principal: Principal, verb: str) -> None:
    if not principal.has_any_role(QI_STAFF_ROLES):
        raise AuthorizationError(f"Only QI staff can {verb} shared access")


def _find_token_match(
    invitations: Iterable[SharedAccessInvitation], token: str
) -> SharedAccessInvitation | None:
    # Check every candidate so timing does not depend on position
    match = None
    for invitation in invitations:
        if validate_token(token, invitation.access_token, invitation.token_expires_at):
            match = invitation
    return match


class SharedAccessService:
    """Invitation lifecycle and access checks."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _get_resource(
        self, resource_type: SharedAccessResourceType, resource_id: int
    ) -> Investigation | CorrectiveAction | None:
        model = RESOURCE_MODELS[resource_type]
        result = await self.session.execute(select(model).where(model.id == resource_id))
        return result.scalar_one_or_none()

    async def _resource_invitations(
        self,
        resource_type: SharedAccessResourceType,
        resource_id: int,
        statuses: Iterable[SharedAccessStatus],
    ) -> list[SharedAccessInvitation]:
        result = await self.session.execute(
            select(SharedAccessInvitation).where(
                SharedAccessInvitation.resource_type == resource_type.value,
                SharedAccessInvitation.resource_id == resource_id,
                SharedAccessInvitation.status.in_([s.value for s in statuses]),
            )
        )
        return list(result.scalars().all())

    async def _check_target(
        self,
        resource_type: SharedAccessResourceType,
        resource_id: int,
        incident_id: str,
        expires_at: datetime | None,
    ) -> None:
        resource = await self._get_resource(resource_type, resource_id)
        if resource is None:
            raise NotFoundError(RESOURCE_LABELS[resource_type])

        if resource.incident_id != incident_id:
            raise ValidationError(
                "Resource does not belong to this incident",
                [{"path": "incidentId", "message": f"Expected {resource.incident_id}"}],
            )

        if expires_at is not None and is_token_expired(expires_at):
            raise ValidationError(
                "Token expiry must be in the future",
                [{"path": "tokenExpiresAt", "message": "Must be in the future"}],
            )

    def _new_invitation(
        self,
        principal: Principal,
        resource_type: SharedAccessResourceType,
        resource_id: int,
        incident_id: str,
        email: str,
        role: SharedAccessRole | None,
        expires_at: datetime | None,
    ) -> SharedAccessInvitation:
        email = email.strip().lower()
        if not email:
            raise ValidationError(
                "Email is required", [{"path": "email", "message": "Must not be blank"}]
            )

        token, default_expires_at = generate_shared_access_token()
        invitation = SharedAccessInvitation(
            resource_type=resource_type.value,
            resource_id=resource_id,
            incident_id=incident_id,
            email=email,
            role=(role or DEFAULT_ROLE_FOR_RESOURCE[resource_type]).value,
            access_token=token,
            token_expires_at=as_utc(expires_at) if expires_at else default_expires_at,
            status=SharedAccessStatus.PENDING.value,
            invited_by=principal.id,
            invited_at=utc_now(),
        )
        self.session.add(invitation)
        return invitation

    async def create_invitation(
        self,
        principal: Principal,
        resource_type: SharedAccessResourceType,
        resource_id: int,
        incident_id: str,
        email: str,
        role: SharedAccessRole | None = None,
        expires_at: datetime | None = None,
    ) -> tuple[SharedAccessInvitation, str]:
        """Invite a collaborator to one resource.

        Args:
            principal: QI staff member sending the invitation
            resource_type: Investigation or corrective action
            resource_id: Resource id
            incident_id: Incident the resource belongs to
            email: Collaborator email (stored lower-cased)
            role: Role label (defaults from the resource type)
            expires_at: Token expiry (defaults to the configured TTL)

        Returns:
            Tuple of (invitation, access URL)

        Raises:
            AuthorizationError: Caller is not QI staff
            NotFoundError: Resource does not exist
            ValidationError: Bad email, incident mismatch or past expiry
        """
        _require_qi_staff(principal, "manage")
        await self._check_target(resource_type, resource_id, incident_id, expires_at)

        invitation = self._new_invitation(
            principal, resource_type, resource_id, incident_id, email, role, expires_at
        )
        await self.session.commit()
        await self.session.refresh(invitation)

        audit_logger.log(
            action="shared_access.invited",
            actor_id=principal.id,
            entity_type=resource_type.value,
            entity_id=resource_id,
            metadata={"invitation_id": invitation.id, "email": invitation.email},
        )
        return invitation, build_access_url(resource_type, resource_id, invitation.access_token)

    async def bulk_create_invitations(
        self,
        principal: Principal,
        resource_type: SharedAccessResourceType,
        resource_id: int,
        incident_id: str,
        invitations: list[tuple[str, SharedAccessRole | None]],
        expires_at: datetime | None = None,
    ) -> list[tuple[SharedAccessInvitation, str]]:
        """Invite several collaborators to one resource in a single commit."""
        _require_qi_staff(principal, "manage")
        if not invitations:
            raise ValidationError(
                "At least one invitation is required",
                [{"path": "invitations", "message": "Must not be empty"}],
            )
        await self._check_target(resource_type, resource_id, incident_id, expires_at)

        created = [
            self._new_invitation(
                principal, resource_type, resource_id, incident_id, email, role, expires_at
            )
            for email, role in invitations
        ]
        await self.session.commit()
        for invitation in created:
            await self.session.refresh(invitation)

        audit_logger.log(
            action="shared_access.bulk_invited",
            actor_id=principal.id,
            entity_type=resource_type.value,
            entity_id=resource_id,
            metadata={"invitation_ids": [i.id for i in created]},
        )
        return [
            (invitation, build_access_url(resource_type, resource_id, invitation.access_token))
            for invitation in created
        ]

    async def accept_invitation(
        self,
        token: str,
        resource_type: SharedAccessResourceType,
        resource_id: int,
        principal: Principal | None = None,
    ) -> SharedAccessInvitation:
        """Accept an invitation by presenting its token.

        Accepting an already accepted invitation is a no-op apart from
        binding the principal, if one is given.

        Raises:
            NotFoundError: No pending or accepted invitation matches, or it
                has expired
        """
        candidates = await self._resource_invitations(
            resource_type,
            resource_id,
            (SharedAccessStatus.PENDING, SharedAccessStatus.ACCEPTED),
        )
        invitation = _find_token_match(candidates, token)
        if invitation is None:
            raise NotFoundError("Invitation")

        now = utc_now()
        if not invitation.is_accepted:
            invitation.status = SharedAccessStatus.ACCEPTED.value
            invitation.accepted_at = now
        if principal is not None and invitation.user_id is None:
            invitation.user_id = principal.id
        invitation.last_accessed_at = now

        await self.session.commit()
        await self.session.refresh(invitation)

        audit_logger.log(
            action="shared_access.accepted",
            actor_id=principal.id if principal else None,
            entity_type=resource_type.value,
            entity_id=resource_id,
            metadata={"invitation_id": invitation.id},
        )
        return invitation

    async def revoke_invitation(
        self, principal: Principal, access_id: int
    ) -> SharedAccessInvitation:
        """Permanently revoke an invitation.

        Raises:
            AuthorizationError: Caller is not QI staff
            NotFoundError: No such invitation
            ValidationError: Already revoked
        """
        _require_qi_staff(principal, "revoke")

        result = await self.session.execute(
            select(SharedAccessInvitation).where(SharedAccessInvitation.id == access_id)
        )
        invitation = result.scalar_one_or_none()
        if invitation is None:
            raise NotFoundError("Invitation")

        if invitation.is_revoked:
            raise ValidationError("Invitation is already revoked")

        invitation.status = SharedAccessStatus.REVOKED.value
        invitation.revoked_by = principal.id
        invitation.revoked_at = utc_now()
        await self.session.commit()
        await self.session.refresh(invitation)

        audit_logger.log(
            action="shared_access.revoked",
            actor_id=principal.id,
            entity_type=invitation.resource_type,
            entity_id=invitation.resource_id,
            metadata={"invitation_id": invitation.id},
        )
        return invitation

    async def list_invitations(
        self,
        principal: Principal,
        resource_type: SharedAccessResourceType,
        resource_id: int,
    ) -> list[SharedAccessInvitation]:
        """List every invitation for a resource, newest first."""
        _require_qi_staff(principal, "view")

        result = await self.session.execute(
            select(SharedAccessInvitation)
            .where(
                SharedAccessInvitation.resource_type == resource_type.value,
                SharedAccessInvitation.resource_id == resource_id,
            )
            .order_by(SharedAccessInvitation.invited_at.desc())
        )
        return list(result.scalars().all())

    async def can_access_resource(
        self,
        resource_type: SharedAccessResourceType,
        resource_id: int,
        principal: Principal | None = None,
        token: str | None = None,
    ) -> bool:
        """Check access to an investigation or corrective action.

        Checked in order: direct role, token, then an invitation bound to the
        principal's user id or email. The token and bound paths require an
        accepted, unexpired invitation and stamp ``last_accessed_at``.
        """
        if principal is not None and principal.has_any_role(SHARED_RESOURCE_ROLES):
            return True

        if not token and principal is None:
            return False

        accepted = await self._resource_invitations(
            resource_type, resource_id, (SharedAccessStatus.ACCEPTED,)
        )
        invitation = None
        if token:
            invitation = _find_token_match(accepted, token)

        if invitation is None and principal is not None:
            invitation = next(
                (
                    i
                    for i in accepted
                    if not is_token_expired(i.token_expires_at)
                    and (
                        i.user_id == principal.id
                        or (principal.email and i.email == principal.email.lower())
                    )
                ),
                None,
            )

        if invitation is None:
            return False

        invitation.last_accessed_at = utc_now()
        await self.session.commit()
        return True

    async def _get_secure(
        self,
        resource_type: SharedAccessResourceType,
        resource_id: int,
        principal: Principal | None,
        token: str | None,
    ) -> Investigation | CorrectiveAction:
        label = RESOURCE_LABELS[resource_type]
        if not await self.can_access_resource(resource_type, resource_id, principal, token):
            raise NotFoundError(label)

        resource = await self._get_resource(resource_type, resource_id)
        if resource is None:
            raise NotFoundError(label)
        return resource

    async def get_investigation_secure(
        self,
        investigation_id: int,
        principal: Principal | None = None,
        token: str | None = None,
    ) -> Investigation:
        """Fetch an investigation the caller may access, else NotFoundError."""
        return await self._get_secure(
            SharedAccessResourceType.INVESTIGATION, investigation_id, principal, token
        )

    async def get_corrective_action_secure(
        self,
        action_id: int,
        principal: Principal | None = None,
        token: str | None = None,
    ) -> CorrectiveAction:
        """Fetch a corrective action the caller may access, else NotFoundError."""
        return await self._get_secure(
            SharedAccessResourceType.CORRECTIVE_ACTION, action_id, principal, token
        )
