"""Workflow notifications.

Delivery (email, in-app) is handled by a separate service; here each
notification is only logged so that the hand-off points are traceable.
"""

import logging
from typing import Iterable

logger = logging.getLogger(__name__)


def notify(
    event: str,
    incident_id: str,
    recipient_ids: Iterable[int | None] = (),
    actor_id: int | None = None,
) -> None:
    """Record a workflow notification for later delivery."""
    recipients = [r for r in recipient_ids if r is not None]
    logger.info(
        f"Notification queued: event={event} incident={incident_id} "
        f"recipients={recipients or 'qi_department'} actor={actor_id}",
        extra={"incident_id": incident_id, "action": event},
    )
