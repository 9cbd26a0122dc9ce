"""Tickets Router - client support tickets."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from bpm.core.deps import (
    get_current_session,
    get_db,
    get_outbox,
    require_csrf_header,
    require_roles,
)
from bpm.db.enums import Role
from bpm.schemas.auth import UserSession
from bpm.schemas.common import ApiResponse, ok
from bpm.schemas.ticket import TicketAssign, TicketCreate, TicketRead, TicketStatusUpdate
from bpm.services import ticket_service
from bpm.services.notification_dispatch import NotificationOutbox

router = APIRouter()


@router.post(
    "",
    status_code=201,
    response_model=ApiResponse[TicketRead],
    dependencies=[Depends(require_csrf_header)],
)
def create_ticket(
    data: TicketCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
    outbox: NotificationOutbox = Depends(get_outbox),
):
    ticket = ticket_service.create_ticket(db, outbox, session, data)
    return ok(TicketRead.model_validate(ticket), "Ticket created successfully")


@router.get(
    "",
    response_model=ApiResponse[list[TicketRead]],
    dependencies=[Depends(require_roles([Role.ADMIN]))],
)
def list_tickets(db: Session = Depends(get_db)):
    return ok([TicketRead.model_validate(t) for t in ticket_service.list_tickets(db)])


@router.get("/my", response_model=ApiResponse[list[TicketRead]])
def list_my_tickets(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Opened by the caller (clients) or assigned to the caller (staff)."""
    tickets = ticket_service.list_my_tickets(db, session)
    return ok([TicketRead.model_validate(t) for t in tickets])


@router.patch(
    "/{ticket_id}/assign",
    response_model=ApiResponse[TicketRead],
    dependencies=[Depends(require_csrf_header)],
)
def assign_ticket(
    ticket_id: UUID,
    data: TicketAssign,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
    outbox: NotificationOutbox = Depends(get_outbox),
):
    ticket = ticket_service.assign_ticket(db, outbox, ticket_id, session, data.employee_id)
    return ok(TicketRead.model_validate(ticket), "Ticket assigned successfully")


@router.patch(
    "/{ticket_id}/status",
    response_model=ApiResponse[TicketRead],
    dependencies=[Depends(require_csrf_header)],
)
def update_ticket_status(
    ticket_id: UUID,
    data: TicketStatusUpdate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
    outbox: NotificationOutbox = Depends(get_outbox),
):
    ticket = ticket_service.update_ticket_status(db, outbox, ticket_id, session, data.status)
    return ok(TicketRead.model_validate(ticket), "Ticket status updated successfully")


@router.delete(
    "/{ticket_id}",
    dependencies=[Depends(require_csrf_header)],
)
def delete_ticket(
    ticket_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    ticket_service.delete_ticket(db, ticket_id, session)
    return ok(message="Ticket deleted successfully")
