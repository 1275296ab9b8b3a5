"""Occurrence/variance report (OVR) models.

Includes:
- Incident: the OVR itself, with supervisor, QI, HOD and closure sections
- IncidentInvestigator: ad-hoc investigators assigned by QI or the HOD
"""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ovr.db.base import Base, BaseNoId, TimestampMixin

if TYPE_CHECKING:
    from ovr.models.corrective_action import CorrectiveAction
    from ovr.models.investigation import Investigation


class IncidentStatus(str, Enum):
    """Incident workflow states.

    The live workflow is draft -> hod_assigned -> qi_final_review -> closed.
    The remaining members are legacy states still present on older rows.
    """
    DRAFT = "draft"
    SUBMITTED = "submitted"
    SUPERVISOR_APPROVED = "supervisor_approved"
    QI_REVIEW = "qi_review"
    HOD_ASSIGNED = "hod_assigned"
    INVESTIGATING = "investigating"
    QI_FINAL_REVIEW = "qi_final_review"
    QI_FINAL_ACTIONS = "qi_final_actions"
    CLOSED = "closed"


ACTIVE_STATUSES = frozenset(
    {
        IncidentStatus.SUBMITTED,
        IncidentStatus.SUPERVISOR_APPROVED,
        IncidentStatus.QI_REVIEW,
        IncidentStatus.HOD_ASSIGNED,
        IncidentStatus.INVESTIGATING,
        IncidentStatus.QI_FINAL_REVIEW,
        IncidentStatus.QI_FINAL_ACTIONS,
    }
)


def is_closed_status(status: str) -> bool:
    """Check if status is terminal."""
    return status == IncidentStatus.CLOSED.value


def is_active_status(status: str) -> bool:
    """Check if status is somewhere between submission and closure."""
    return status in {s.value for s in ACTIVE_STATUSES}


def can_edit_status(status: str) -> bool:
    """Only drafts may be edited by their reporter."""
    return status == IncidentStatus.DRAFT.value


class SeverityLevel(str, Enum):
    """Severity level assigned by QI at closure."""
    NEAR_MISS = "near_miss"
    NO_APPARENT_INJURY = "no_apparent_injury"
    MINOR = "minor"
    MAJOR = "major"


class InvestigatorStatus(str, Enum):
    """Investigator assignment states."""
    PENDING = "pending"
    SUBMITTED = "submitted"


class Incident(BaseNoId, TimestampMixin):
    """Occurrence/variance report."""

    __tablename__ = "incidents"

    id: Mapped[str] = mapped_column(String(20), primary_key=True)

    status: Mapped[str] = mapped_column(
        String(30), default=IncidentStatus.DRAFT.value, nullable=False, index=True
    )

    # Reporter
    reporter_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    submitted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Supervisor section (legacy approval step)
    supervisor_id: Mapped[Optional[int]] = mapped_column(
        Integer, nullable=True, index=True
    )
    supervisor_action: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    supervisor_action_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    supervisor_approved_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # QI assignment
    qi_received_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    qi_received_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    qi_assigned_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    qi_assigned_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    department_head_id: Mapped[Optional[int]] = mapped_column(
        Integer, nullable=True, index=True
    )
    hod_assigned_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # HOD investigation
    investigation_findings: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    problems_identified: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    cause_classification: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    cause_details: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    prevention_recommendation: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    hod_action_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    hod_submitted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # QI closure
    qi_feedback: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    qi_form_complete: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    qi_proper_cause_identified: Mapped[Optional[bool]] = mapped_column(
        Boolean, nullable=True
    )
    qi_proper_timeframe: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    qi_action_complies_standards: Mapped[Optional[bool]] = mapped_column(
        Boolean, nullable=True
    )
    qi_effective_corrective_action: Mapped[Optional[bool]] = mapped_column(
        Boolean, nullable=True
    )
    severity_level: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    closed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    investigators: Mapped[list["IncidentInvestigator"]] = relationship(
        "IncidentInvestigator",
        back_populates="incident",
        lazy="noload",
    )
    investigations: Mapped[list["Investigation"]] = relationship(
        "Investigation",
        back_populates="incident",
        lazy="noload",
    )
    corrective_actions: Mapped[list["CorrectiveAction"]] = relationship(
        "CorrectiveAction",
        back_populates="incident",
        lazy="noload",
    )

    __table_args__ = (
        Index("ix_incidents_reporter_status", "reporter_id", "status"),
    )

    def is_assigned_investigator(self, user_id: int) -> bool:
        """Check whether a user holds an investigator assignment."""
        return any(inv.investigator_id == user_id for inv in self.investigators or [])

    def __repr__(self) -> str:
        return f"<Incident {self.id} ({self.status})>"


class IncidentInvestigator(Base, TimestampMixin):
    """Investigator assigned to an incident."""

    __tablename__ = "incident_investigators"

    incident_id: Mapped[str] = mapped_column(
        String(20), ForeignKey("incidents.id"), nullable=False, index=True
    )
    investigator_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    assigned_by: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=InvestigatorStatus.PENDING.value, nullable=False
    )
    findings: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    submitted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    incident: Mapped["Incident"] = relationship(
        "Incident",
        back_populates="investigators",
    )

    __table_args__ = (
        UniqueConstraint(
            "incident_id",
            "investigator_id",
            name="uq_incident_investigators_incident_investigator",
        ),
    )

    @property
    def assigned_at(self) -> datetime:
        """Assignment timestamp."""
        return self.created_at
