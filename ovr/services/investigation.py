"""Investigation service.

Investigations are opened by QI staff and worked on by internal
investigators or by external collaborators holding a shared-access token.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ovr.core.logging import audit_logger
from ovr.models.incident import IncidentStatus
from ovr.models.investigation import Investigation
from ovr.schemas.investigation import InvestigationSubmit, InvestigationUpdate
from ovr.services.errors import AuthorizationError, ValidationError
from ovr.services.rbac import QI_STAFF_ROLES, Principal
from ovr.services.shared_access import SharedAccessService
from ovr.services.visibility import IncidentQueryService
from ovr.utils.time import utc_now

logger = logging.getLogger(__name__)


class InvestigationService:
    """Service for investigation workspaces."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.access = SharedAccessService(session)

    async def create_investigation(
        self,
        principal: Principal,
        incident_id: str,
        investigators: list[int] | None = None,
    ) -> Investigation:
        """Open the investigation for an incident (one per incident).

        ``investigators`` defaults to the creator when empty.

        Raises:
            AuthorizationError: Caller is not QI staff
            NotFoundError: Incident absent or not visible
            ValidationError: Incident is a draft or already has one
        """
        if not principal.has_any_role(QI_STAFF_ROLES):
            raise AuthorizationError("Only QI staff can create investigations")

        incident = await IncidentQueryService(self.session).get_incident_secure(
            incident_id, principal
        )
        if incident.status == IncidentStatus.DRAFT.value:
            raise ValidationError("Cannot open an investigation on a draft incident")

        existing = await self.session.execute(
            select(Investigation.id).where(Investigation.incident_id == incident_id)
        )
        if existing.scalar_one_or_none() is not None:
            raise ValidationError("An investigation already exists for this incident")

        investigation = Investigation(
            incident_id=incident_id,
            investigators=list(investigators or [principal.id]),
            created_by=principal.id,
        )
        self.session.add(investigation)
        await self.session.commit()
        await self.session.refresh(investigation)

        audit_logger.log(
            action="investigation.created",
            actor_id=principal.id,
            entity_type="investigation",
            entity_id=investigation.id,
            metadata={
                "incident_id": incident_id,
                "investigators": investigation.investigators,
            },
        )
        return investigation

    async def get_investigation(
        self,
        investigation_id: int,
        principal: Principal | None = None,
        token: str | None = None,
    ) -> Investigation:
        """Fetch an investigation the caller may access."""
        return await self.access.get_investigation_secure(investigation_id, principal, token)

    async def update_investigation(
        self,
        investigation_id: int,
        data: InvestigationUpdate,
        principal: Principal | None = None,
        token: str | None = None,
    ) -> Investigation:
        """Save investigation progress.

        Raises:
            NotFoundError: Not accessible
            ValidationError: Already submitted
        """
        investigation = await self.get_investigation(investigation_id, principal, token)
        if investigation.is_submitted:
            raise ValidationError("Investigation has already been submitted")

        for field, value in data.model_dump(exclude_none=True).items():
            setattr(investigation, field, value)

        await self.session.commit()
        await self.session.refresh(investigation)

        logger.info(
            f"Investigation {investigation_id} updated",
            extra={"user_id": principal.id if principal else None},
        )
        return investigation

    async def submit_investigation(
        self,
        investigation_id: int,
        data: InvestigationSubmit,
        principal: Principal | None = None,
        token: str | None = None,
    ) -> Investigation:
        """Submit final findings. An investigation is submitted only once.

        Raises:
            NotFoundError: Not accessible
            ValidationError: Already submitted
        """
        investigation = await self.get_investigation(investigation_id, principal, token)
        if investigation.is_submitted:
            raise ValidationError("Investigation has already been submitted")

        investigation.findings = data.findings
        investigation.problems_identified = data.problems_identified
        investigation.cause_classification = data.cause_classification
        investigation.cause_details = data.cause_details
        investigation.submitted_at = utc_now()
        investigation.submitted_by = principal.id if principal else None

        await self.session.commit()
        await self.session.refresh(investigation)

        audit_logger.log(
            action="investigation.submitted",
            actor_id=principal.id if principal else None,
            entity_type="investigation",
            entity_id=investigation.id,
            metadata={"via_token": principal is None},
        )
        return investigation
