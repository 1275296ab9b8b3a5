"""Investigation schemas."""

from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, Field, PositiveInt, model_validator

from ovr.schemas.common import CamelRequest, NonBlankStr


class InvestigationCreate(CamelRequest):
    """Schema for opening an investigation on an incident."""

    ovr_report_id: NonBlankStr
    investigators: Annotated[list[PositiveInt], Field(min_length=1)] | None = None


class InvestigationUpdate(CamelRequest):
    """Schema for saving investigation progress."""

    findings: str | None = None
    problems_identified: str | None = None
    cause_classification: str | None = None
    cause_details: str | None = None
    rca_analysis: str | None = None
    fishbone_analysis: str | None = None
    corrective_action_plan: str | None = None

    @model_validator(mode="after")
    def require_one_field(self) -> "InvestigationUpdate":
        """At least one field must be provided."""
        if not self.model_dump(exclude_none=True):
            raise ValueError("At least one field must be provided")
        return self


class InvestigationSubmit(CamelRequest):
    """Schema for submitting final investigation findings."""

    findings: str = Field(..., min_length=100)
    problems_identified: str = Field(..., min_length=50)
    cause_classification: NonBlankStr
    cause_details: str = Field(..., min_length=50)


class InvestigationRead(BaseModel):
    """Schema for reading an investigation."""

    id: int
    incident_id: str
    created_by: int
    investigators: list[int]
    findings: str | None
    problems_identified: str | None
    cause_classification: str | None
    cause_details: str | None
    rca_analysis: str | None
    fishbone_analysis: str | None
    corrective_action_plan: str | None
    submitted_at: datetime | None
    submitted_by: int | None
    created_at: datetime
    updated_at: datetime | None

    model_config = {"from_attributes": True}
