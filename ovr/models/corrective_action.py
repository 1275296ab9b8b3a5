"""Corrective action items raised from an incident."""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ovr.db.base import Base, TimestampMixin

if TYPE_CHECKING:
    from ovr.models.incident import Incident


class CorrectiveActionStatus(str, Enum):
    """Corrective action states."""
    OPEN = "open"
    CLOSED = "closed"


class CorrectiveAction(Base, TimestampMixin):
    """Remediation task tracked to completion through a checklist."""

    __tablename__ = "corrective_actions"

    incident_id: Mapped[str] = mapped_column(
        String(20), ForeignKey("incidents.id"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    due_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # JSON array blob, see ovr.services.checklist
    checklist: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    action_taken: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # JSON array of evidence file references
    evidence_files: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    assigned_to: Mapped[list[int]] = mapped_column(JSON, nullable=False, default=list)

    status: Mapped[str] = mapped_column(
        String(20), default=CorrectiveActionStatus.OPEN.value, nullable=False, index=True
    )
    created_by: Mapped[int] = mapped_column(Integer, nullable=False)
    closed_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    closed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    incident: Mapped["Incident"] = relationship(
        "Incident",
        back_populates="corrective_actions",
    )

    @property
    def is_closed(self) -> bool:
        """Check if the action has been closed."""
        return self.status == CorrectiveActionStatus.CLOSED.value

    def __repr__(self) -> str:
        return f"<CorrectiveAction {self.id} ({self.status})>"
