"""Incident intake: drafting and submission.

Submitted incidents enter the workflow at ``hod_assigned`` directly; the
supervisor approval step is retired.
"""

import logging
import re

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ovr.core.logging import audit_logger
from ovr.models.incident import Incident, IncidentStatus, can_edit_status
from ovr.services.errors import NotFoundError, ValidationError
from ovr.services.notifications import notify
from ovr.services.rbac import Principal
from ovr.utils.time import utc_now

logger = logging.getLogger(__name__)

OVR_ID_PATTERN = re.compile(r"^OVR-(\d{4})-(\d{3,})$")


def format_ovr_id(year: int, sequence: int) -> str:
    """Format an OVR reference, e.g. ``OVR-2026-001``."""
    return f"OVR-{year}-{sequence:03d}"


def parse_ovr_id(value: str) -> tuple[int, int] | None:
    """Split an OVR reference into (year, sequence), or None if malformed."""
    match = OVR_ID_PATTERN.match(value)
    if not match:
        return None
    return int(match.group(1)), int(match.group(2))


class IncidentService:
    """Service for creating and submitting incident reports."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def generate_ovr_id(self, year: int | None = None) -> str:
        """Generate the next OVR reference for a year."""
        year = year or utc_now().year
        result = await self.session.execute(
            select(func.count())
            .select_from(Incident)
            .where(Incident.id.like(f"OVR-{year}-%"))
        )
        count = result.scalar() or 0
        return format_ovr_id(year, count + 1)

    async def create_incident(
        self,
        principal: Principal,
        title: str,
        description: str,
        submit: bool = False,
    ) -> Incident:
        """Create an incident owned by the caller.

        Args:
            principal: Reporter
            title: Short summary
            description: What happened
            submit: Submit immediately instead of saving a draft

        Returns:
            Created incident
        """
        if not title.strip() or not description.strip():
            raise ValidationError(
                "Title and description are required",
                [
                    {"path": name, "message": "Must not be blank"}
                    for name, value in (("title", title), ("description", description))
                    if not value.strip()
                ],
            )

        now = utc_now()
        incident = Incident(
            id=await self.generate_ovr_id(now.year),
            reporter_id=principal.id,
            title=title.strip(),
            description=description.strip(),
            status=(
                IncidentStatus.HOD_ASSIGNED.value if submit else IncidentStatus.DRAFT.value
            ),
            submitted_at=now if submit else None,
        )
        self.session.add(incident)
        await self.session.commit()
        await self.session.refresh(incident)

        logger.info(
            f"Incident {incident.id} created ({incident.status})",
            extra={"user_id": principal.id, "incident_id": incident.id},
        )
        audit_logger.log(
            action="incident.submitted" if submit else "incident.draft_created",
            actor_id=principal.id,
            entity_type="incident",
            entity_id=incident.id,
        )
        if submit:
            notify("incident_submitted", incident.id, actor_id=principal.id)

        return incident

    async def submit_draft(self, principal: Principal, incident_id: str) -> Incident:
        """Submit the caller's draft into the workflow.

        Raises:
            NotFoundError: No such incident, or it is someone else's
            ValidationError: The incident is no longer a draft
        """
        result = await self.session.execute(
            select(Incident).where(
                Incident.id == incident_id,
                Incident.reporter_id == principal.id,
            )
        )
        incident = result.scalar_one_or_none()
        if incident is None:
            raise NotFoundError("Incident")

        if not can_edit_status(incident.status):
            raise ValidationError("Only draft incidents can be submitted")

        incident.status = IncidentStatus.HOD_ASSIGNED.value
        incident.submitted_at = utc_now()
        await self.session.commit()
        await self.session.refresh(incident)

        audit_logger.log(
            action="incident.submitted",
            actor_id=principal.id,
            entity_type="incident",
            entity_id=incident.id,
        )
        notify("incident_submitted", incident.id, actor_id=principal.id)
        return incident
