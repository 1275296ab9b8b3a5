"""Tests for shared-access invitations and resource access checks."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from ovr.core.config import settings
from ovr.models.corrective_action import CorrectiveAction
from ovr.models.investigation import Investigation
from ovr.models.shared_access import (
    SharedAccessInvitation,
    SharedAccessResourceType,
    SharedAccessRole,
    SharedAccessStatus,
)
from ovr.services.errors import AuthorizationError, NotFoundError, ValidationError
from ovr.services.rbac import Principal
from ovr.services.shared_access import SharedAccessService
from ovr.utils.time import as_utc

from conftest import INVESTIGATOR_ID

INVESTIGATION = SharedAccessResourceType.INVESTIGATION
CORRECTIVE_ACTION = SharedAccessResourceType.CORRECTIVE_ACTION


@pytest.fixture
async def invitation(
    async_session: AsyncSession, investigation: Investigation, qi_manager: Principal
) -> SharedAccessInvitation:
    """Pending invitation to the investigation."""
    created, _ = await SharedAccessService(async_session).create_invitation(
        qi_manager,
        INVESTIGATION,
        investigation.id,
        investigation.incident_id,
        "Investigator@Hospital.Local",
    )
    return created


@pytest.fixture
async def accepted_invitation(
    async_session: AsyncSession, invitation: SharedAccessInvitation
) -> SharedAccessInvitation:
    """Invitation accepted anonymously via its token."""
    return await SharedAccessService(async_session).accept_invitation(
        invitation.access_token, INVESTIGATION, invitation.resource_id
    )


class TestCreateInvitation:
    """Invitation creation."""

    @pytest.mark.asyncio
    async def test_create_defaults(
        self,
        async_session: AsyncSession,
        investigation: Investigation,
        qi_analyst: Principal,
    ) -> None:
        """Email is lower-cased and defaults come from the resource type."""
        invitation, url = await SharedAccessService(async_session).create_invitation(
            qi_analyst,
            INVESTIGATION,
            investigation.id,
            investigation.incident_id,
            "  Nurse.Lee@Hospital.Local ",
        )

        assert invitation.email == "nurse.lee@hospital.local"
        assert invitation.role == SharedAccessRole.INVESTIGATOR.value
        assert invitation.status == SharedAccessStatus.PENDING.value
        assert invitation.invited_by == qi_analyst.id
        assert len(invitation.access_token) == 64
        assert url == (
            f"{settings.public_base_url.rstrip('/')}/investigations/"
            f"{investigation.id}?token={invitation.access_token}"
        )

        expected = datetime.now(timezone.utc) + timedelta(
            days=settings.shared_access_token_ttl_days
        )
        delta = as_utc(invitation.token_expires_at) - expected
        assert abs(delta.total_seconds()) < 60

    @pytest.mark.asyncio
    async def test_corrective_action_default_role(
        self,
        async_session: AsyncSession,
        corrective_action: CorrectiveAction,
        qi_manager: Principal,
    ) -> None:
        """Corrective action invitations default to action handler."""
        invitation, url = await SharedAccessService(async_session).create_invitation(
            qi_manager,
            CORRECTIVE_ACTION,
            corrective_action.id,
            corrective_action.incident_id,
            "facilities@hospital.local",
        )

        assert invitation.role == SharedAccessRole.ACTION_HANDLER.value
        assert f"/corrective_actions/{corrective_action.id}?token=" in url

    @pytest.mark.asyncio
    async def test_non_qi_rejected(
        self,
        async_session: AsyncSession,
        investigation: Investigation,
        hod: Principal,
    ) -> None:
        """Only QI staff may invite."""
        with pytest.raises(AuthorizationError):
            await SharedAccessService(async_session).create_invitation(
                hod, INVESTIGATION, investigation.id, investigation.incident_id, "a@b.org"
            )

    @pytest.mark.asyncio
    async def test_missing_resource(
        self, async_session: AsyncSession, hod_incident, qi_manager: Principal
    ) -> None:
        """Inviting to an unknown resource is not found."""
        with pytest.raises(NotFoundError) as exc_info:
            await SharedAccessService(async_session).create_invitation(
                qi_manager, INVESTIGATION, 999, hod_incident.id, "a@b.org"
            )

        assert exc_info.value.message == "Investigation not found"

    @pytest.mark.asyncio
    async def test_incident_mismatch(
        self,
        async_session: AsyncSession,
        investigation: Investigation,
        qi_manager: Principal,
    ) -> None:
        """The resource must belong to the named incident."""
        with pytest.raises(ValidationError):
            await SharedAccessService(async_session).create_invitation(
                qi_manager, INVESTIGATION, investigation.id, "OVR-2026-999", "a@b.org"
            )

    @pytest.mark.asyncio
    async def test_past_expiry_rejected(
        self,
        async_session: AsyncSession,
        investigation: Investigation,
        qi_manager: Principal,
    ) -> None:
        """Expiry must lie in the future."""
        with pytest.raises(ValidationError):
            await SharedAccessService(async_session).create_invitation(
                qi_manager,
                INVESTIGATION,
                investigation.id,
                investigation.incident_id,
                "a@b.org",
                expires_at=datetime.now(timezone.utc) - timedelta(days=1),
            )

    @pytest.mark.asyncio
    async def test_bulk_create(
        self,
        async_session: AsyncSession,
        investigation: Investigation,
        qi_manager: Principal,
    ) -> None:
        """Bulk invitations get distinct tokens."""
        service = SharedAccessService(async_session)
        created = await service.bulk_create_invitations(
            qi_manager,
            INVESTIGATION,
            investigation.id,
            investigation.incident_id,
            [("one@hospital.local", None), ("two@hospital.local", SharedAccessRole.VIEWER)],
        )

        assert len(created) == 2
        assert created[0][0].access_token != created[1][0].access_token
        assert created[1][0].role == SharedAccessRole.VIEWER.value

        listed = await service.list_invitations(qi_manager, INVESTIGATION, investigation.id)
        assert {i.email for i in listed} == {"one@hospital.local", "two@hospital.local"}

    @pytest.mark.asyncio
    async def test_bulk_requires_entries(
        self,
        async_session: AsyncSession,
        investigation: Investigation,
        qi_manager: Principal,
    ) -> None:
        with pytest.raises(ValidationError):
            await SharedAccessService(async_session).bulk_create_invitations(
                qi_manager, INVESTIGATION, investigation.id, investigation.incident_id, []
            )


class TestAcceptAndRevoke:
    """Invitation acceptance and revocation."""

    @pytest.mark.asyncio
    async def test_accept_binds_user(
        self,
        async_session: AsyncSession,
        invitation: SharedAccessInvitation,
        investigator: Principal,
    ) -> None:
        """Accepting with a principal binds the invitation to them."""
        accepted = await SharedAccessService(async_session).accept_invitation(
            invitation.access_token, INVESTIGATION, invitation.resource_id, investigator
        )

        assert accepted.status == SharedAccessStatus.ACCEPTED.value
        assert accepted.accepted_at is not None
        assert accepted.user_id == INVESTIGATOR_ID

    @pytest.mark.asyncio
    async def test_accept_wrong_token(
        self, async_session: AsyncSession, invitation: SharedAccessInvitation
    ) -> None:
        with pytest.raises(NotFoundError):
            await SharedAccessService(async_session).accept_invitation(
                "0" * 64, INVESTIGATION, invitation.resource_id
            )

    @pytest.mark.asyncio
    async def test_accept_wrong_resource(
        self, async_session: AsyncSession, invitation: SharedAccessInvitation
    ) -> None:
        """A token is scoped to the resource it was issued for."""
        with pytest.raises(NotFoundError):
            await SharedAccessService(async_session).accept_invitation(
                invitation.access_token, CORRECTIVE_ACTION, invitation.resource_id
            )

    @pytest.mark.asyncio
    async def test_accept_expired(
        self, async_session: AsyncSession, invitation: SharedAccessInvitation
    ) -> None:
        invitation.token_expires_at = datetime.now(timezone.utc) - timedelta(minutes=1)
        await async_session.commit()

        with pytest.raises(NotFoundError):
            await SharedAccessService(async_session).accept_invitation(
                invitation.access_token, INVESTIGATION, invitation.resource_id
            )

    @pytest.mark.asyncio
    async def test_revoke_is_permanent(
        self,
        async_session: AsyncSession,
        accepted_invitation: SharedAccessInvitation,
        qi_manager: Principal,
    ) -> None:
        """Revoked invitations cannot be accepted or revoked again."""
        service = SharedAccessService(async_session)

        revoked = await service.revoke_invitation(qi_manager, accepted_invitation.id)
        assert revoked.status == SharedAccessStatus.REVOKED.value
        assert revoked.revoked_by == qi_manager.id

        with pytest.raises(ValidationError):
            await service.revoke_invitation(qi_manager, accepted_invitation.id)
        with pytest.raises(NotFoundError):
            await service.accept_invitation(
                accepted_invitation.access_token,
                INVESTIGATION,
                accepted_invitation.resource_id,
            )

    @pytest.mark.asyncio
    async def test_revoke_requires_qi(
        self,
        async_session: AsyncSession,
        invitation: SharedAccessInvitation,
        reporter: Principal,
    ) -> None:
        with pytest.raises(AuthorizationError):
            await SharedAccessService(async_session).revoke_invitation(
                reporter, invitation.id
            )

    @pytest.mark.asyncio
    async def test_list_requires_qi(
        self,
        async_session: AsyncSession,
        invitation: SharedAccessInvitation,
        hod: Principal,
    ) -> None:
        with pytest.raises(AuthorizationError):
            await SharedAccessService(async_session).list_invitations(
                hod, INVESTIGATION, invitation.resource_id
            )


class TestCanAccessResource:
    """Resource access decisions."""

    @pytest.mark.asyncio
    async def test_qi_role_has_direct_access(
        self,
        async_session: AsyncSession,
        investigation: Investigation,
        qi_analyst: Principal,
    ) -> None:
        assert await SharedAccessService(async_session).can_access_resource(
            INVESTIGATION, investigation.id, principal=qi_analyst
        )

    @pytest.mark.asyncio
    async def test_anonymous_without_token(
        self, async_session: AsyncSession, investigation: Investigation
    ) -> None:
        assert not await SharedAccessService(async_session).can_access_resource(
            INVESTIGATION, investigation.id
        )

    @pytest.mark.asyncio
    async def test_pending_token_grants_nothing(
        self, async_session: AsyncSession, invitation: SharedAccessInvitation
    ) -> None:
        """Tokens work only once accepted."""
        assert not await SharedAccessService(async_session).can_access_resource(
            INVESTIGATION, invitation.resource_id, token=invitation.access_token
        )

    @pytest.mark.asyncio
    async def test_accepted_token_grants_access(
        self, async_session: AsyncSession, accepted_invitation: SharedAccessInvitation
    ) -> None:
        """An accepted token grants access and records the visit."""
        accepted_invitation.last_accessed_at = None
        await async_session.commit()

        allowed = await SharedAccessService(async_session).can_access_resource(
            INVESTIGATION,
            accepted_invitation.resource_id,
            token=accepted_invitation.access_token,
        )

        assert allowed
        await async_session.refresh(accepted_invitation)
        assert accepted_invitation.last_accessed_at is not None

    @pytest.mark.asyncio
    async def test_token_flips_at_expiry(
        self, async_session: AsyncSession, accepted_invitation: SharedAccessInvitation
    ) -> None:
        service = SharedAccessService(async_session)
        accepted_invitation.token_expires_at = datetime.now(timezone.utc) - timedelta(
            seconds=1
        )
        await async_session.commit()

        assert not await service.can_access_resource(
            INVESTIGATION,
            accepted_invitation.resource_id,
            token=accepted_invitation.access_token,
        )

    @pytest.mark.asyncio
    async def test_revoked_token_denied(
        self,
        async_session: AsyncSession,
        accepted_invitation: SharedAccessInvitation,
        qi_manager: Principal,
    ) -> None:
        service = SharedAccessService(async_session)
        await service.revoke_invitation(qi_manager, accepted_invitation.id)

        assert not await service.can_access_resource(
            INVESTIGATION,
            accepted_invitation.resource_id,
            token=accepted_invitation.access_token,
        )

    @pytest.mark.asyncio
    async def test_bound_email_grants_access(
        self,
        async_session: AsyncSession,
        accepted_invitation: SharedAccessInvitation,
        investigator: Principal,
        other_employee: Principal,
    ) -> None:
        """A logged-in invitee is matched by email without the token."""
        service = SharedAccessService(async_session)

        assert await service.can_access_resource(
            INVESTIGATION, accepted_invitation.resource_id, principal=investigator
        )
        assert not await service.can_access_resource(
            INVESTIGATION, accepted_invitation.resource_id, principal=other_employee
        )

    @pytest.mark.asyncio
    async def test_bound_email_denied_after_expiry(
        self,
        async_session: AsyncSession,
        accepted_invitation: SharedAccessInvitation,
        investigator: Principal,
    ) -> None:
        """Expiry applies to logged-in invitees as well as token holders."""
        accepted_invitation.token_expires_at = datetime.now(timezone.utc) - timedelta(
            seconds=1
        )
        await async_session.commit()

        assert not await SharedAccessService(async_session).can_access_resource(
            INVESTIGATION, accepted_invitation.resource_id, principal=investigator
        )

    @pytest.mark.asyncio
    async def test_secure_getters(
        self,
        async_session: AsyncSession,
        accepted_invitation: SharedAccessInvitation,
        corrective_action: CorrectiveAction,
    ) -> None:
        """Secure getters return the resource or raise NotFoundError."""
        service = SharedAccessService(async_session)

        found = await service.get_investigation_secure(
            accepted_invitation.resource_id, token=accepted_invitation.access_token
        )
        assert found.id == accepted_invitation.resource_id

        with pytest.raises(NotFoundError):
            await service.get_corrective_action_secure(
                corrective_action.id, token=accepted_invitation.access_token
            )
