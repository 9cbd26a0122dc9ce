"""Application chat messages between a client and the staff working on it."""

import logging
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.orm import Session, selectinload

from bpm.core import permissions
from bpm.core.errors import ConflictError, NotFoundError, PermissionDenied, ValidationFailed
from bpm.db.enums import MessageType, RealtimeEvent, Role
from bpm.db.models import Application, ApplicationAssignment, Message, User
from bpm.db.types import utcnow
from bpm.schemas.auth import UserSession
from bpm.schemas.message import MessageRead
from bpm.services.application_service import get_application_or_404
from bpm.services.notification_dispatch import NotificationOutbox

logger = logging.getLogger(__name__)


def resolve_recipient(application: Application, session: UserSession) -> UUID:
    """
    Pick the other side of the conversation.

    A client writes to the first assigned employee; staff write to the client.
    """
    if session.role == Role.CLIENT:
        first = _first_assignment(application)
        if first is None:
            raise ConflictError("No employee is assigned to this application yet")
        return first.employee_id
    return application.client_id


def _first_assignment(application: Application) -> ApplicationAssignment | None:
    if not application.assignments:
        return None
    return min(application.assignments, key=lambda a: a.assigned_at)


def send_message(
    db: Session,
    application_id: UUID,
    session: UserSession,
    content: str,
    message_type: MessageType = MessageType.TEXT,
) -> Message:
    application = get_application_or_404(db, application_id)
    permissions.check_application_access(session, application)

    content = content.strip()
    if not content:
        raise ValidationFailed("Message content is required")

    message = Message(
        application_id=application.id,
        sender_id=session.user_id,
        recipient_id=resolve_recipient(application, session),
        content=content,
        type=MessageType(message_type).value,
    )
    db.add(message)
    db.commit()
    db.refresh(message)
    logger.info("message %s sent on application %s", message.id, application.id)
    return message


def list_messages(db: Session, application_id: UUID, session: UserSession) -> list[Message]:
    """Conversation for one application, oldest first."""
    application = get_application_or_404(db, application_id)
    permissions.check_application_access(session, application)
    return (
        db.query(Message)
        .filter(Message.application_id == application_id)
        .order_by(Message.created_at.asc())
        .all()
    )


def mark_messages_read(db: Session, application_id: UUID, session: UserSession) -> int:
    """Mark every message addressed to the caller in this application as read."""
    application = get_application_or_404(db, application_id)
    permissions.check_application_access(session, application)

    result = db.execute(
        update(Message)
        .where(
            Message.application_id == application_id,
            Message.recipient_id == session.user_id,
            Message.is_read.is_(False),
        )
        .values(is_read=True, read_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return result.rowcount or 0


def mark_read_by_ids(db: Session, session: UserSession, message_ids: list[UUID]) -> int:
    """Mark the listed messages read; ids not addressed to the caller are skipped."""
    result = db.execute(
        update(Message)
        .where(
            Message.id.in_(message_ids),
            Message.recipient_id == session.user_id,
            Message.is_read.is_(False),
        )
        .values(is_read=True, read_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return result.rowcount or 0


def get_unread_count(db: Session, user_id: UUID, application_id: UUID | None = None) -> int:
    query = db.query(Message).filter(
        Message.recipient_id == user_id, Message.is_read.is_(False)
    )
    if application_id is not None:
        query = query.filter(Message.application_id == application_id)
    return query.count()


def delete_message(db: Session, message_id: UUID, session: UserSession) -> None:
    """Only the sender may delete a message."""
    message = db.get(Message, message_id)
    if not message:
        raise NotFoundError("Message not found")
    if message.sender_id != session.user_id:
        raise PermissionDenied("You can only delete your own messages")
    db.delete(message)
    db.commit()
    logger.info("message %s deleted by user %s", message_id, session.user_id)


def list_conversations(db: Session, session: UserSession) -> list[dict]:
    """
    One summary per application the caller chats on, most recently updated first.

    Applications without messages, or without someone on the other side
    yet, are left out.
    """
    query = db.query(Application).options(
        selectinload(Application.client),
        selectinload(Application.assignments).selectinload(ApplicationAssignment.employee),
    )
    if session.role == Role.CLIENT:
        query = query.filter(Application.client_id == session.user_id)
    elif session.role == Role.EMPLOYEE:
        query = query.filter(
            Application.assignments.any(ApplicationAssignment.employee_id == session.user_id)
        )

    conversations = []
    for application in query.order_by(Application.updated_at.desc()).all():
        partner = _conversation_partner(application, session)
        if partner is None:
            continue
        last_message = (
            db.query(Message)
            .filter(Message.application_id == application.id)
            .order_by(Message.created_at.desc())
            .first()
        )
        if last_message is None:
            continue
        conversations.append(
            {
                "application": application,
                "partner": partner,
                "last_message": last_message,
                "unread_count": get_unread_count(db, session.user_id, application.id),
            }
        )
    return conversations


def _conversation_partner(application: Application, session: UserSession) -> User | None:
    if session.role == Role.CLIENT:
        first = _first_assignment(application)
        return first.employee if first else None
    return application.client


def enqueue_new_message(outbox: NotificationOutbox | None, message: Message) -> dict:
    """Queue `new_message` for sender and recipient; returns the pushed payload."""
    payload = MessageRead.model_validate(message).model_dump(mode="json")
    if outbox is not None:
        for user_id in dict.fromkeys((message.sender_id, message.recipient_id)):
            outbox.enqueue(user_id, (RealtimeEvent.NEW_MESSAGE.value,), payload)
    return payload
