"""Support tickets opened by clients and worked by staff."""

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from bpm.core import permissions
from bpm.core.errors import NotFoundError, PermissionDenied, ValidationFailed
from bpm.db.enums import ROLES_ASSIGNABLE, Role, TicketCategory, TicketStatus, WorkPriority
from bpm.db.models import Ticket, User
from bpm.schemas.auth import UserSession
from bpm.schemas.ticket import TicketCreate
from bpm.services import notification_facade
from bpm.services.notification_dispatch import NotificationOutbox

logger = logging.getLogger(__name__)


def get_ticket_or_404(db: Session, ticket_id: UUID) -> Ticket:
    ticket = db.get(Ticket, ticket_id)
    if not ticket:
        raise NotFoundError("Ticket not found")
    return ticket


def create_ticket(
    db: Session,
    outbox: NotificationOutbox | None,
    session: UserSession,
    data: TicketCreate,
) -> Ticket:
    """Open a ticket for the calling client and tell every admin."""
    if session.role != Role.CLIENT:
        raise PermissionDenied("Only clients can open tickets")

    ticket = Ticket(
        user_id=session.user_id,
        title=data.title.strip(),
        description=data.description,
        priority=WorkPriority(data.priority).value,
        category=TicketCategory(data.category).value,
        status=TicketStatus.OPEN.value,
    )
    db.add(ticket)
    db.commit()
    db.refresh(ticket)
    logger.info("ticket %s opened by %s", ticket.id, session.user_id)

    notification_facade.notify_ticket_created(db, outbox, ticket, session.full_name)
    return ticket


def list_tickets(db: Session) -> list[Ticket]:
    return db.query(Ticket).order_by(Ticket.created_at.desc()).all()


def list_my_tickets(db: Session, session: UserSession) -> list[Ticket]:
    """Clients see tickets they opened; staff see tickets assigned to them."""
    query = db.query(Ticket)
    if session.role == Role.CLIENT:
        query = query.filter(Ticket.user_id == session.user_id)
    else:
        query = query.filter(Ticket.assigned_to_id == session.user_id)
    return query.order_by(Ticket.created_at.desc()).all()


def assign_ticket(
    db: Session,
    outbox: NotificationOutbox | None,
    ticket_id: UUID,
    session: UserSession,
    employee_id: UUID,
) -> Ticket:
    """Hand a ticket to a staff member; the ticket moves to in_progress."""
    permissions.check_admin(session, "assign tickets")
    ticket = get_ticket_or_404(db, ticket_id)

    employee = db.get(User, employee_id)
    allowed_roles = {r.value for r in ROLES_ASSIGNABLE}
    if not employee or employee.role not in allowed_roles or not employee.is_active:
        raise ValidationFailed(
            "Tickets can only be assigned to employees or admins",
            errors=[{"field": "employee_id", "message": "Not an active employee"}],
        )

    ticket.assigned_to_id = employee.id
    ticket.status = TicketStatus.IN_PROGRESS.value
    db.commit()
    db.refresh(ticket)
    logger.info("ticket %s assigned to %s", ticket.id, employee.id)

    notification_facade.notify_ticket_assigned(db, outbox, ticket, employee.full_name, session)
    return ticket


def update_ticket_status(
    db: Session,
    outbox: NotificationOutbox | None,
    ticket_id: UUID,
    session: UserSession,
    status: TicketStatus,
) -> Ticket:
    """Admins, or the employee the ticket is assigned to."""
    ticket = get_ticket_or_404(db, ticket_id)
    if not permissions.is_admin(session) and not (
        session.role == Role.EMPLOYEE and ticket.assigned_to_id == session.user_id
    ):
        raise PermissionDenied("Not authorized to update this ticket")

    ticket.status = TicketStatus(status).value
    db.commit()
    db.refresh(ticket)
    logger.info("ticket %s -> %s by %s", ticket.id, ticket.status, session.user_id)

    notification_facade.notify_ticket_status_changed(db, outbox, ticket, session)
    return ticket


def delete_ticket(db: Session, ticket_id: UUID, session: UserSession) -> None:
    permissions.check_admin(session, "delete tickets")
    ticket = get_ticket_or_404(db, ticket_id)
    db.delete(ticket)
    db.commit()
    logger.info("ticket %s deleted by %s", ticket_id, session.user_id)
