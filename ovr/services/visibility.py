"""Row-level visibility for incidents.

Three tiers, checked in this order:

- elevated roles (QI, executives, admins, developers) see every non-draft
  incident, plus their own drafts when ``include_drafts`` is set;
- supervisory roles (supervisor, team lead) see incidents they reported and
  non-draft incidents where they are the recorded supervisor;
- everyone else sees incidents they reported, drafts only with
  ``include_drafts``.

``my_reports_only`` narrows any tier to the caller's own reports.

A draft is never visible to anyone but its reporter. The SQL clause and the
in-memory predicate encode the same rules and must stay in step.
"""

import logging

from sqlalchemy import ColumnElement, and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ovr.models.corrective_action import CorrectiveAction
from ovr.models.incident import Incident, IncidentStatus
from ovr.models.investigation import Investigation
from ovr.services.errors import NotFoundError
from ovr.services.rbac import Principal

logger = logging.getLogger(__name__)

DRAFT = IncidentStatus.DRAFT.value


def build_incident_visibility_filter(
    principal: Principal,
    include_drafts: bool = False,
    my_reports_only: bool = False,
) -> ColumnElement[bool]:
    """Build the SQL visibility clause for a principal.

    Args:
        principal: Caller
        include_drafts: Also return the caller's own drafts
        my_reports_only: Restrict to incidents the caller reported

    Returns:
        Boolean clause to use in ``where()``
    """
    is_own = Incident.reporter_id == principal.id
    not_draft = Incident.status != DRAFT

    if my_reports_only:
        return is_own

    if principal.is_elevated:
        if include_drafts:
            return or_(not_draft, is_own)
        return not_draft

    if principal.is_supervisory:
        return or_(
            is_own,
            and_(Incident.supervisor_id == principal.id, not_draft),
        )

    if include_drafts:
        return is_own
    return and_(is_own, not_draft)


def is_incident_visible(
    incident: Incident,
    principal: Principal,
    include_drafts: bool = False,
    my_reports_only: bool = False,
) -> bool:
    """In-memory counterpart of ``build_incident_visibility_filter``."""
    is_own = incident.reporter_id == principal.id
    not_draft = incident.status != DRAFT

    if my_reports_only:
        return is_own

    if principal.is_elevated:
        return not_draft or (include_drafts and is_own)

    if principal.is_supervisory:
        return is_own or (incident.supervisor_id == principal.id and not_draft)

    if include_drafts:
        return is_own
    return is_own and not_draft


class IncidentQueryService:
    """Visibility-checked reads of incidents and their children."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_incident_secure(
        self,
        incident_id: str,
        principal: Principal,
        load_investigators: bool = False,
    ) -> Incident:
        """Fetch one incident the principal may see.

        Existence is checked first, visibility second. Both failures raise
        the same NotFoundError so callers cannot tell which ids exist.

        Args:
            incident_id: Incident reference
            principal: Caller
            load_investigators: Eagerly load investigator assignments

        Returns:
            Incident

        Raises:
            NotFoundError: If the incident is absent or not visible
        """
        exists = await self.session.execute(
            select(Incident.id).where(Incident.id == incident_id)
        )
        if exists.scalar_one_or_none() is None:
            raise NotFoundError("Incident")

        query = select(Incident).where(
            Incident.id == incident_id,
            build_incident_visibility_filter(principal, include_drafts=True),
        )
        if load_investigators:
            query = query.options(selectinload(Incident.investigators)).execution_options(
                populate_existing=True
            )

        result = await self.session.execute(query)
        incident = result.scalar_one_or_none()
        if incident is None:
            logger.info(
                f"Incident {incident_id} hidden from user {principal.id}",
                extra={"user_id": principal.id, "incident_id": incident_id},
            )
            raise NotFoundError("Incident")

        return incident

    async def list_incidents(
        self,
        principal: Principal,
        include_drafts: bool = False,
        my_reports_only: bool = False,
        status: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[Incident], int]:
        """List visible incidents, newest first.

        Returns:
            Tuple of (incidents, total count)
        """
        conditions = [
            build_incident_visibility_filter(principal, include_drafts, my_reports_only)
        ]
        if status:
            conditions.append(Incident.status == status)

        count_result = await self.session.execute(
            select(func.count()).select_from(Incident).where(*conditions)
        )
        total = count_result.scalar() or 0

        result = await self.session.execute(
            select(Incident)
            .where(*conditions)
            .order_by(Incident.created_at.desc(), Incident.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all()), total

    async def list_drafts(self, principal: Principal) -> list[Incident]:
        """List the caller's own drafts."""
        result = await self.session.execute(
            select(Incident)
            .where(
                Incident.reporter_id == principal.id,
                Incident.status == DRAFT,
            )
            .order_by(Incident.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_investigations_for_incident(
        self, incident_id: str, principal: Principal
    ) -> list[Investigation]:
        """List investigations of a visible incident."""
        await self.get_incident_secure(incident_id, principal)
        result = await self.session.execute(
            select(Investigation)
            .where(Investigation.incident_id == incident_id)
            .order_by(Investigation.created_at)
        )
        return list(result.scalars().all())

    async def get_corrective_actions_for_incident(
        self, incident_id: str, principal: Principal
    ) -> list[CorrectiveAction]:
        """List corrective actions of a visible incident."""
        await self.get_incident_secure(incident_id, principal)
        result = await self.session.execute(
            select(CorrectiveAction)
            .where(CorrectiveAction.incident_id == incident_id)
            .order_by(CorrectiveAction.due_date)
        )
        return list(result.scalars().all())
