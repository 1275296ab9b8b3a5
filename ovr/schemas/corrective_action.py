"""Corrective action schemas."""

from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, Field, PositiveInt

from ovr.models.corrective_action import CorrectiveActionStatus
from ovr.schemas.common import CamelRequest, NonBlankStr


class CorrectiveActionCreate(CamelRequest):
    """Schema for raising a corrective action.

    ``checklist`` is a list of item texts; ids are generated server-side.
    """

    ovr_report_id: NonBlankStr
    title: str = Field(..., min_length=5, max_length=255)
    description: str = Field(..., min_length=20)
    due_date: datetime
    checklist: list[NonBlankStr] = Field(..., min_length=1)
    assigned_to: Annotated[list[PositiveInt], Field(min_length=1)] | None = None


class CorrectiveActionUpdate(CamelRequest):
    """Schema for updating a corrective action.

    ``checklist`` is the full stored blob; it is validated by the codec.
    ``evidence_files`` is a JSON array of file references.
    """

    checklist: str | None = None
    action_taken: str | None = None
    evidence_files: str | None = None


class ChecklistItemRead(BaseModel):
    """Schema for reading a checklist item."""

    id: str
    text: str
    completed: bool
    completed_at: str | None
    completed_by: int | None

    model_config = {"from_attributes": True}


class CorrectiveActionRead(BaseModel):
    """Schema for reading a corrective action."""

    id: int
    incident_id: str
    title: str
    description: str
    due_date: datetime
    checklist: str
    checklist_items: list[ChecklistItemRead] = []
    checklist_progress: int = 0
    action_taken: str | None
    evidence_files: str | None
    assigned_to: list[int]
    status: CorrectiveActionStatus
    created_by: int
    closed_by: int | None
    closed_at: datetime | None
    created_at: datetime
    updated_at: datetime | None

    model_config = {"from_attributes": True}
