"""Corrective action service."""

import json
import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from ovr.core.logging import audit_logger
from ovr.models.corrective_action import CorrectiveAction, CorrectiveActionStatus
from ovr.models.incident import IncidentStatus
from ovr.services.checklist import (
    create_checklist,
    is_checklist_complete,
    parse_checklist,
    serialize_checklist,
    toggle_checklist_item,
)
from ovr.services.errors import AuthorizationError, ValidationError
from ovr.services.rbac import QI_CLOSE_ROLES, QI_STAFF_ROLES, Principal
from ovr.services.shared_access import SharedAccessService
from ovr.services.visibility import IncidentQueryService
from ovr.utils.time import as_utc, utc_now

logger = logging.getLogger(__name__)


def normalize_evidence_files(blob: str) -> str:
    """Validate an evidence list (JSON array of strings) and re-serialize it.

    Raises:
        ValidationError: If the blob is not a JSON array of strings
    """
    try:
        files = json.loads(blob)
    except json.JSONDecodeError as e:
        raise ValidationError(
            "Invalid evidence files",
            [{"path": "evidenceFiles", "message": f"Invalid JSON ({e.msg})"}],
        ) from e

    if not isinstance(files, list) or not all(isinstance(f, str) for f in files):
        raise ValidationError(
            "Invalid evidence files",
            [{"path": "evidenceFiles", "message": "Must be an array of strings"}],
        )
    return json.dumps(files, separators=(",", ":"), ensure_ascii=False)


class CorrectiveActionService:
    """Service for corrective actions and their checklists."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.access = SharedAccessService(session)

    async def create_corrective_action(
        self,
        principal: Principal,
        incident_id: str,
        title: str,
        description: str,
        due_date: datetime,
        checklist: list[str],
        assigned_to: list[int] | None = None,
    ) -> CorrectiveAction:
        """Raise a corrective action with a fresh checklist.

        ``assigned_to`` defaults to the creator when empty.

        Raises:
            AuthorizationError: Caller is not QI staff
            NotFoundError: Incident absent or not visible
            ValidationError: Draft incident or empty checklist
        """
        if not principal.has_any_role(QI_STAFF_ROLES):
            raise AuthorizationError("Only QI staff can create corrective actions")

        incident = await IncidentQueryService(self.session).get_incident_secure(
            incident_id, principal
        )
        if incident.status == IncidentStatus.DRAFT.value:
            raise ValidationError("Cannot raise corrective actions on a draft incident")

        if not checklist:
            raise ValidationError(
                "Checklist must contain at least one item",
                [{"path": "checklist", "message": "Must not be empty"}],
            )

        action = CorrectiveAction(
            incident_id=incident_id,
            title=title,
            description=description,
            due_date=as_utc(due_date),
            checklist=create_checklist(checklist),
            assigned_to=list(assigned_to or [principal.id]),
            status=CorrectiveActionStatus.OPEN.value,
            created_by=principal.id,
        )
        self.session.add(action)
        await self.session.commit()
        await self.session.refresh(action)

        audit_logger.log(
            action="corrective_action.created",
            actor_id=principal.id,
            entity_type="corrective_action",
            entity_id=action.id,
            metadata={"incident_id": incident_id},
        )
        return action

    async def get_corrective_action(
        self,
        action_id: int,
        principal: Principal | None = None,
        token: str | None = None,
    ) -> CorrectiveAction:
        """Fetch a corrective action the caller may access."""
        return await self.access.get_corrective_action_secure(action_id, principal, token)

    async def _get_open(
        self, action_id: int, principal: Principal | None, token: str | None
    ) -> CorrectiveAction:
        action = await self.get_corrective_action(action_id, principal, token)
        if action.is_closed:
            raise ValidationError("Corrective action is already closed")
        return action

    async def update_corrective_action(
        self,
        action_id: int,
        principal: Principal | None = None,
        token: str | None = None,
        checklist: str | None = None,
        action_taken: str | None = None,
        evidence_files: str | None = None,
    ) -> CorrectiveAction:
        """Update the checklist blob, the action taken or the evidence list.

        Raises:
            NotFoundError: Not accessible
            ValidationError: Closed action or malformed checklist
        """
        action = await self._get_open(action_id, principal, token)

        if checklist is not None:
            # Normalise through the codec so only well-formed blobs are stored
            action.checklist = serialize_checklist(parse_checklist(checklist))
        if action_taken is not None:
            action.action_taken = action_taken
        if evidence_files is not None:
            action.evidence_files = normalize_evidence_files(evidence_files)

        await self.session.commit()
        await self.session.refresh(action)
        return action

    async def toggle_item(
        self,
        action_id: int,
        item_id: str,
        principal: Principal | None = None,
        token: str | None = None,
    ) -> CorrectiveAction:
        """Flip one checklist item."""
        action = await self._get_open(action_id, principal, token)

        action.checklist = toggle_checklist_item(
            action.checklist,
            item_id,
            user_id=principal.id if principal else None,
        )
        await self.session.commit()
        await self.session.refresh(action)

        logger.info(
            f"Checklist item {item_id} toggled on corrective action {action_id}",
            extra={"user_id": principal.id if principal else None},
        )
        return action

    async def close_corrective_action(
        self, action_id: int, principal: Principal
    ) -> CorrectiveAction:
        """Close a corrective action once its checklist is complete.

        Raises:
            NotFoundError: Not accessible
            AuthorizationError: Caller may not close actions
            ValidationError: Already closed or checklist incomplete
        """
        action = await self.get_corrective_action(action_id, principal)

        if not principal.has_any_role(QI_CLOSE_ROLES):
            raise AuthorizationError("Only QI managers can close corrective actions")

        if action.is_closed:
            raise ValidationError("Corrective action is already closed")

        if not is_checklist_complete(action.checklist):
            raise ValidationError(
                "All checklist items must be completed before closing",
                [{"path": "checklist", "message": "Checklist is not complete"}],
            )

        action.status = CorrectiveActionStatus.CLOSED.value
        action.closed_by = principal.id
        action.closed_at = utc_now()
        await self.session.commit()
        await self.session.refresh(action)

        audit_logger.log(
            action="corrective_action.closed",
            actor_id=principal.id,
            entity_type="corrective_action",
            entity_id=action.id,
            metadata={"incident_id": action.incident_id},
        )
        return action
