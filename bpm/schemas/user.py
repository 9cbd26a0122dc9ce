"""User, client and employee schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class UserRead(BaseModel):
    id: UUID
    email: str
    full_name: str
    role: str
    phone: str | None
    nationality: str | None
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class ClientRead(UserRead):
    application_count: int = 0


class EmployeeRead(UserRead):
    assigned_count: int = 0


class ClientDeleteResult(BaseModel):
    """Rows removed per table by a client cascade delete."""
    client_id: UUID
    documents: int
    timeline_entries: int
    payment_installments: int
    payments: int
    tasks: int
    messages: int
    notifications: int
    ticket_replies: int
    tickets: int
    assignments: int
    applications: int
