"""Formal investigation attached to an incident."""

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ovr.db.base import Base, TimestampMixin

if TYPE_CHECKING:
    from ovr.models.incident import Incident


class Investigation(Base, TimestampMixin):
    """Investigation workspace shared with internal or invited investigators."""

    __tablename__ = "investigations"

    incident_id: Mapped[str] = mapped_column(
        String(20), ForeignKey("incidents.id"), nullable=False, unique=True, index=True
    )
    created_by: Mapped[int] = mapped_column(Integer, nullable=False)
    # User ids working the investigation; defaults to the creator
    investigators: Mapped[list[int]] = mapped_column(JSON, nullable=False, default=list)

    findings: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    problems_identified: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    cause_classification: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    cause_details: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    rca_analysis: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    fishbone_analysis: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    corrective_action_plan: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    submitted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    submitted_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    incident: Mapped["Incident"] = relationship(
        "Incident",
        back_populates="investigations",
    )

    @property
    def is_submitted(self) -> bool:
        """Check if findings have been submitted."""
        return self.submitted_at is not None

    def __repr__(self) -> str:
        return f"<Investigation {self.id} incident={self.incident_id}>"
