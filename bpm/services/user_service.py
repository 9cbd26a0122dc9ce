"""User service - users, clients, employees and the client cascade delete."""

import logging
from uuid import UUID

from sqlalchemy import delete, func, or_, select
from sqlalchemy.orm import Session

from bpm.core import permissions
from bpm.core.errors import ConflictError, NotFoundError, ValidationFailed
from bpm.db.enums import ROLES_ASSIGNABLE, Role
from bpm.db.models import (
    Application,
    ApplicationAssignment,
    ApplicationDocument,
    ApplicationTimeline,
    Message,
    Notification,
    Payment,
    PaymentInstallment,
    Task,
    Ticket,
    TicketReply,
    User,
)
from bpm.schemas.auth import UserSession

logger = logging.getLogger(__name__)


def get_user_by_id(db: Session, user_id: UUID) -> User | None:
    return db.get(User, user_id)


def get_user_by_email(db: Session, email: str) -> User | None:
    """Get user by email (case-insensitive)."""
    return db.query(User).filter(User.email == email.strip().lower()).first()


def create_user(
    db: Session,
    email: str,
    full_name: str,
    role: Role | str = Role.CLIENT,
    phone: str | None = None,
    nationality: str | None = None,
) -> User:
    """Create a user. Email is stored lower-cased and must be unique."""
    if not Role.has_value(role):
        raise ValidationFailed(f"Invalid role: {role}")
    if get_user_by_email(db, email):
        raise ConflictError("A user with this email already exists")

    user = User(
        email=email.strip().lower(),
        full_name=full_name,
        role=Role(role).value,
        phone=phone,
        nationality=nationality,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("user %s created with role %s", user.id, user.role)
    return user


def revoke_all_sessions(db: Session, user_id: UUID) -> bool:
    """
    Revoke all sessions for a user by bumping token_version.

    Returns:
        True if user found and sessions revoked, False if user not found
    """
    user = db.get(User, user_id)
    if not user:
        return False
    user.token_version += 1
    db.commit()
    return True


# =============================================================================
# Clients
# =============================================================================


def list_clients(db: Session) -> list[tuple[User, int]]:
    """Clients with their application counts, newest first."""
    counts = (
        select(Application.client_id, func.count(Application.id).label("n"))
        .group_by(Application.client_id)
        .subquery()
    )
    rows = db.execute(
        select(User, func.coalesce(counts.c.n, 0))
        .outerjoin(counts, counts.c.client_id == User.id)
        .where(User.role == Role.CLIENT.value)
        .order_by(User.created_at.desc())
    ).all()
    return [(user, count) for user, count in rows]


def get_client(db: Session, client_id: UUID) -> tuple[User, int]:
    user = db.get(User, client_id)
    if not user or user.role != Role.CLIENT.value:
        raise NotFoundError("Client not found")
    count = db.scalar(
        select(func.count(Application.id)).where(Application.client_id == client_id)
    )
    return user, count or 0


def delete_client(db: Session, client_id: UUID, session: UserSession) -> dict:
    """
    Delete a client and everything hanging off it in one transaction.

    Order matters only for databases that enforce the foreign keys: leaf
    rows first, then assignments and applications, then the user.
    Any failure rolls the whole delete back.

    Returns:
        Row counts per table plus client_id.
    """
    permissions.check_admin(session, "delete clients")
    user = db.get(User, client_id)
    if not user or user.role != Role.CLIENT.value:
        raise NotFoundError("Client not found")

    app_ids = select(Application.id).where(Application.client_id == client_id)
    payment_ids = select(Payment.id).where(
        or_(Payment.client_id == client_id, Payment.application_id.in_(app_ids))
    )
    ticket_ids = select(Ticket.id).where(Ticket.user_id == client_id)

    statements = [
        ("documents", delete(ApplicationDocument).where(
            ApplicationDocument.application_id.in_(app_ids)
        )),
        ("timeline_entries", delete(ApplicationTimeline).where(
            ApplicationTimeline.application_id.in_(app_ids)
        )),
        ("payment_installments", delete(PaymentInstallment).where(
            PaymentInstallment.payment_id.in_(payment_ids)
        )),
        ("payments", delete(Payment).where(
            or_(Payment.client_id == client_id, Payment.application_id.in_(app_ids))
        )),
        ("tasks", delete(Task).where(Task.application_id.in_(app_ids))),
        ("messages", delete(Message).where(
            or_(
                Message.application_id.in_(app_ids),
                Message.sender_id == client_id,
                Message.recipient_id == client_id,
            )
        )),
        ("notifications", delete(Notification).where(Notification.user_id == client_id)),
        ("ticket_replies", delete(TicketReply).where(
            or_(TicketReply.ticket_id.in_(ticket_ids), TicketReply.user_id == client_id)
        )),
        ("tickets", delete(Ticket).where(Ticket.user_id == client_id)),
        ("assignments", delete(ApplicationAssignment).where(
            ApplicationAssignment.application_id.in_(app_ids)
        )),
        ("applications", delete(Application).where(Application.client_id == client_id)),
    ]

    counts: dict = {"client_id": client_id}
    try:
        for name, statement in statements:
            result = db.execute(statement.execution_options(synchronize_session=False))
            counts[name] = result.rowcount or 0
        db.execute(
            delete(User)
            .where(User.id == client_id)
            .execution_options(synchronize_session=False)
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(
        "client %s deleted by admin %s (%d applications)",
        client_id,
        session.user_id,
        counts["applications"],
    )
    return counts


# =============================================================================
# Employees
# =============================================================================


def list_employees(db: Session) -> list[tuple[User, int]]:
    """Staff who can be assigned, with their current assignment counts."""
    counts = (
        select(
            ApplicationAssignment.employee_id,
            func.count(ApplicationAssignment.id).label("n"),
        )
        .group_by(ApplicationAssignment.employee_id)
        .subquery()
    )
    rows = db.execute(
        select(User, func.coalesce(counts.c.n, 0))
        .outerjoin(counts, counts.c.employee_id == User.id)
        .where(User.role.in_([role.value for role in ROLES_ASSIGNABLE]))
        .where(User.is_active.is_(True))
        .order_by(User.full_name)
    ).all()
    return [(user, count) for user, count in rows]
