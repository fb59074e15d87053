"""Case, case contact and reimbursement schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class AssignedVolunteer(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    display_name: str
    active: bool


class CaseRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    organization_id: UUID
    case_number: str
    active: bool
    volunteers: list[AssignedVolunteer] = []
    contact_count: int = 0


class ReimbursementRead(BaseModel):
    """A case contact that requested driving reimbursement."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    case_id: UUID
    case_number: str
    creator_id: UUID | None
    creator_name: str | None
    occurred_at: datetime
    miles_driven: int
    reimbursement_complete: bool


class ReimbursementStatusUpdate(BaseModel):
    reimbursement_complete: bool
