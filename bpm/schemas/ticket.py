"""Support ticket schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from bpm.db.enums import TicketCategory, TicketStatus, WorkPriority


class TicketCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    priority: WorkPriority = WorkPriority.MEDIUM
    category: TicketCategory = TicketCategory.GENERAL


class TicketAssign(BaseModel):
    employee_id: UUID


class TicketStatusUpdate(BaseModel):
    status: TicketStatus


class TicketRead(BaseModel):
    id: UUID
    user_id: UUID
    title: str
    description: str
    status: str
    priority: str
    category: str
    assigned_to_id: UUID | None
    created_at: datetime

    model_config = {"from_attributes": True}
