"""SQLAlchemy models."""

from ovr.models.corrective_action import CorrectiveAction, CorrectiveActionStatus
from ovr.models.incident import (
    Incident,
    IncidentInvestigator,
    IncidentStatus,
    InvestigatorStatus,
    SeverityLevel,
)
from ovr.models.investigation import Investigation
from ovr.models.shared_access import (
    SharedAccessInvitation,
    SharedAccessResourceType,
    SharedAccessRole,
    SharedAccessStatus,
)

__all__ = [
    "CorrectiveAction",
    "CorrectiveActionStatus",
    "Incident",
    "IncidentInvestigator",
    "IncidentStatus",
    "InvestigatorStatus",
    "Investigation",
    "SeverityLevel",
    "SharedAccessInvitation",
    "SharedAccessResourceType",
    "SharedAccessRole",
    "SharedAccessStatus",
]
