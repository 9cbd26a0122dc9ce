"""Task request/response schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from bpm.db.enums import TaskStatus, WorkPriority


class TaskCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    assigned_to_id: UUID
    due_date: datetime
    priority: WorkPriority = WorkPriority.MEDIUM
    application_id: UUID | None = None


class TaskStatusUpdate(BaseModel):
    status: TaskStatus
    note: str | None = None


class TaskRead(BaseModel):
    id: UUID
    title: str
    description: str | None
    status: str
    priority: str
    application_id: UUID | None
    assigned_to_id: UUID | None
    assigned_to_name: str | None = None
    created_by_id: UUID | None
    created_by_name: str | None = None
    due_date: datetime | None
    completed_at: datetime | None
    created_at: datetime

    @classmethod
    def from_model(cls, task) -> "TaskRead":
        return cls(
            id=task.id,
            title=task.title,
            description=task.description,
            status=task.status,
            priority=task.priority,
            application_id=task.application_id,
            assigned_to_id=task.assigned_to_id,
            assigned_to_name=task.assigned_to.full_name if task.assigned_to else None,
            created_by_id=task.created_by_id,
            created_by_name=task.created_by.full_name if task.created_by else None,
            due_date=task.due_date,
            completed_at=task.completed_at,
            created_at=task.created_at,
        )
