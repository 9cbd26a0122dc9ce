"""Application chat message schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from bpm.db.enums import MessageType


class MessageCreate(BaseModel):
    application_id: UUID
    content: str = Field(..., min_length=1, max_length=5000)
    type: MessageType = MessageType.TEXT


class MessageRead(BaseModel):
    id: UUID
    application_id: UUID
    sender_id: UUID
    recipient_id: UUID
    content: str
    type: str
    is_read: bool
    read_at: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}


class MessagesMarkRead(BaseModel):
    message_ids: list[UUID] = Field(..., min_length=1)


class ConversationPartner(BaseModel):
    id: UUID
    full_name: str
    email: str
    role: str

    model_config = {"from_attributes": True}


class ConversationRead(BaseModel):
    """One application's chat, summarised for the caller's inbox."""
    application_id: UUID
    service_type: str
    status: str
    partner: ConversationPartner
    last_message: MessageRead
    unread_count: int
