"""Incident schemas."""

from datetime import datetime

from pydantic import BaseModel, Field

from ovr.models.incident import IncidentStatus, InvestigatorStatus


class IncidentCreate(BaseModel):
    """Schema for reporting a new incident."""

    title: str = Field(..., min_length=5, max_length=200)
    description: str = Field(..., min_length=10)
    submit: bool = False


class InvestigatorAssignmentRead(BaseModel):
    """Schema for reading an investigator assignment."""

    id: int
    incident_id: str
    investigator_id: int
    assigned_by: int
    status: InvestigatorStatus
    findings: str | None
    assigned_at: datetime
    submitted_at: datetime | None

    model_config = {"from_attributes": True}


class IncidentRead(BaseModel):
    """Schema for reading incident data."""

    id: str
    status: IncidentStatus
    reporter_id: int
    title: str
    description: str
    submitted_at: datetime | None

    supervisor_id: int | None
    supervisor_action: str | None
    supervisor_approved_at: datetime | None

    qi_received_by: int | None
    qi_received_date: datetime | None
    qi_assigned_by: int | None
    qi_assigned_date: datetime | None
    department_head_id: int | None
    hod_assigned_at: datetime | None

    investigation_findings: str | None
    problems_identified: str | None
    cause_classification: str | None
    cause_details: str | None
    prevention_recommendation: str | None
    hod_action_date: datetime | None
    hod_submitted_at: datetime | None

    qi_feedback: str | None
    qi_form_complete: bool | None
    qi_proper_cause_identified: bool | None
    qi_proper_timeframe: bool | None
    qi_action_complies_standards: bool | None
    qi_effective_corrective_action: bool | None
    severity_level: str | None
    closed_at: datetime | None

    created_at: datetime
    updated_at: datetime | None

    model_config = {"from_attributes": True}


class IncidentListResponse(BaseModel):
    """Paginated incident list response."""

    items: list[IncidentRead]
    total: int
    limit: int
    offset: int
