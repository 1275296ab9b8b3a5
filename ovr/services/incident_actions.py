"""Single entry point for incident workflow actions."""

import logging
from typing import Any

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ovr.core.logging import audit_logger
from ovr.models.incident import Incident
from ovr.schemas.actions import ACTION_SCHEMAS, ActionPayload, ActionType
from ovr.services.action_handlers import ACTION_HANDLERS
from ovr.services.action_permissions import (
    can_perform_action,
    validate_action_permission,
)
from ovr.services.errors import NotFoundError, ValidationError, validation_error_from_pydantic
from ovr.services.rbac import Principal
from ovr.services.visibility import IncidentQueryService

logger = logging.getLogger(__name__)

# Actions whose permission check or handler reads investigator assignments
ACTIONS_NEEDING_INVESTIGATORS = frozenset(
    {
        ActionType.ASSIGN_INVESTIGATOR,
        ActionType.SUBMIT_FINDINGS,
    }
)


def parse_action(action: str | ActionType) -> ActionType:
    """Parse an action name.

    Raises:
        ValidationError: If the name is not a known action
    """
    try:
        return ActionType(action)
    except ValueError:
        allowed = ", ".join(a.value for a in ActionType)
        raise ValidationError(
            "Invalid request data",
            [{"path": "action", "message": f"Unknown action '{action}'. Expected one of: {allowed}"}],
        ) from None


def validate_action_data(action: ActionType, data: Any) -> ActionPayload:
    """Validate raw payload data against the action's schema.

    Raises:
        ValidationError: With one ``{path, message}`` entry per bad field
    """
    schema = ACTION_SCHEMAS[action]
    try:
        return schema.model_validate(data if data is not None else {})
    except PydanticValidationError as e:
        raise validation_error_from_pydantic(e, prefix="data") from e


class IncidentActionService:
    """Dispatches workflow actions against incidents."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _load_incident(self, incident_id: str, action: ActionType) -> Incident:
        query = select(Incident).where(Incident.id == incident_id)
        if action in ACTIONS_NEEDING_INVESTIGATORS:
            query = query.options(selectinload(Incident.investigators)).execution_options(
                populate_existing=True
            )

        result = await self.session.execute(query)
        incident = result.scalar_one_or_none()
        if incident is None:
            raise NotFoundError("Incident")
        return incident

    async def dispatch(
        self,
        principal: Principal,
        incident_id: str,
        action: str | ActionType,
        data: Any,
    ) -> Any:
        """Validate and execute a workflow action.

        Args:
            principal: Acting principal
            incident_id: Target incident
            action: Action name (one of ``ActionType``)
            data: Raw action payload

        Returns:
            The handler's result (updated incident or investigator assignment)

        Raises:
            ValidationError: Unknown action, bad payload, or domain rule
            NotFoundError: Incident does not exist
            AuthorizationError: Wrong status or insufficient role
        """
        action_type = parse_action(action)
        payload = validate_action_data(action_type, data)

        incident = await self._load_incident(incident_id, action_type)
        validate_action_permission(principal, incident, action_type)

        previous_status = incident.status
        handler = ACTION_HANDLERS[action_type]
        result = await handler(self.session, incident, payload, principal)

        logger.info(
            f"Action {action_type.value} applied to incident {incident_id}",
            extra={
                "action": action_type.value,
                "user_id": principal.id,
                "incident_id": incident_id,
            },
        )
        audit_logger.log(
            action=f"incident.{action_type.value}",
            actor_id=principal.id,
            entity_type="incident",
            entity_id=incident_id,
            metadata={"from_status": previous_status, "to_status": incident.status},
        )

        return result

    async def available_actions(
        self, principal: Principal, incident_id: str
    ) -> list[ActionType]:
        """List actions the principal could perform on a visible incident."""
        incident = await IncidentQueryService(self.session).get_incident_secure(
            incident_id, principal, load_investigators=True
        )
        return [
            action
            for action in ActionType
            if can_perform_action(principal, incident, action)
        ]
