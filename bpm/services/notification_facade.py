"""Notification facade for domain services.

One function per lifecycle event, deciding who hears about it and what
they read. Every trigger runs after the primary write has committed and
is best-effort: failures are logged and swallowed here so that callers
never see them.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from decimal import Decimal
from typing import Iterable
from uuid import UUID

from sqlalchemy.orm import Session

from bpm.db.enums import (
    ApplicationStatus,
    NotificationPriority,
    NotificationType,
    RealtimeEvent,
    Role,
    TicketStatus,
    WorkPriority,
)
from bpm.db.models import Application, Payment, Task, Ticket
from bpm.schemas.auth import UserSession
from bpm.services import notification_service
from bpm.services.notification_dispatch import NotificationOutbox

logger = logging.getLogger(__name__)


def _label(value: str) -> str:
    return value.replace("_", " ")


def _with_note(message: str, note: str | None, prefix: str = "Note") -> str:
    return f"{message}. {prefix}: {note}" if note else message


def _amount(value: Decimal | float) -> str:
    return f"{Decimal(str(value)):,.2f}"


@contextmanager
def _best_effort(db: Session, trigger: str, application_id: UUID | None = None):
    """Log and swallow failures of a notification trigger."""
    try:
        yield
    except Exception:
        db.rollback()
        logger.warning(
            "Notification trigger %s failed for application %s",
            trigger,
            application_id,
            exc_info=True,
        )


# =============================================================================
# Application lifecycle
# =============================================================================


def notify_new_application(
    db: Session,
    outbox: NotificationOutbox | None,
    application: Application,
    client_name: str,
) -> None:
    """Every admin hears about a new submission."""
    with _best_effort(db, "new_application", application.id):
        notification_service.notify_many(
            db,
            outbox,
            notification_service.get_admin_ids(db),
            "New Application Received",
            f"A new {_label(application.service_type)} application was submitted by {client_name}.",
            type=NotificationType.INFO,
            priority=NotificationPriority.HIGH,
            data={
                "application_id": application.id,
                "service_type": application.service_type,
                "client_id": application.client_id,
                "client_name": client_name,
            },
            event=RealtimeEvent.NEW_APPLICATION,
        )


def notify_review_decision(
    db: Session,
    outbox: NotificationOutbox | None,
    application: Application,
    actor: UserSession,
    approved: bool,
    reason: str | None,
) -> None:
    """Client and every assigned employee hear the review outcome."""
    with _best_effort(db, "review_decision", application.id):
        service = _label(application.service_type)
        status = ApplicationStatus.APPROVED if approved else ApplicationStatus.REJECTED
        data = {
            "application_id": application.id,
            "status": status.value,
            "updated_by": actor.full_name,
            "note": reason,
        }
        if approved:
            client_title = "Application Approved"
            client_message = _with_note(
                f"Your {service} application has been approved! You can now proceed with payment",
                reason,
            )
            staff_message = _with_note(
                f"Application {application.id} has been approved by {actor.full_name}", reason
            )
        else:
            client_title = "Application Rejected"
            client_message = _with_note(
                f"Your {service} application has been rejected", reason, prefix="Reason"
            )
            staff_message = _with_note(
                f"Application {application.id} has been rejected by {actor.full_name}",
                reason,
                prefix="Reason",
            )

        notification_service.notify(
            db,
            outbox,
            application.client_id,
            client_title,
            client_message,
            type=NotificationType.SUCCESS if approved else NotificationType.ERROR,
            priority=NotificationPriority.HIGH,
            data=data,
            event=RealtimeEvent.STATUS_UPDATE,
        )
        notification_service.notify_many(
            db,
            outbox,
            application.assigned_employee_ids,
            f"Application {status.value.capitalize()}",
            staff_message,
            exclude=[actor.user_id],
            type=NotificationType.INFO,
            priority=NotificationPriority.MEDIUM,
            data=data,
            event=RealtimeEvent.STATUS_UPDATE,
        )


def notify_application_assigned(
    db: Session,
    outbox: NotificationOutbox | None,
    application: Application,
    new_employee_ids: Iterable[UUID],
    actor: UserSession,
    note: str | None,
) -> None:
    """Newly assigned employees get the assignment; the client hears it is being worked on."""
    with _best_effort(db, "application_assigned", application.id):
        service = _label(application.service_type)
        notification_service.notify_many(
            db,
            outbox,
            new_employee_ids,
            "New Application Assignment",
            _with_note(
                f"You have been assigned to a {service} application by {actor.full_name}", note
            ),
            exclude=[actor.user_id],
            type=NotificationType.INFO,
            priority=NotificationPriority.HIGH,
            data={
                "application_id": application.id,
                "assigned_by": actor.full_name,
                "note": note,
            },
            event=RealtimeEvent.ASSIGNMENT,
        )
        notification_service.notify(
            db,
            outbox,
            application.client_id,
            "Application Assigned",
            _with_note(
                "Your application has been assigned to our team and is now "
                f"{_label(application.status)}",
                note,
            ),
            type=NotificationType.SUCCESS,
            priority=NotificationPriority.MEDIUM,
            data={
                "application_id": application.id,
                "status": application.status,
                "assigned_by": actor.full_name,
                "note": note,
            },
            event=RealtimeEvent.STATUS_UPDATE,
        )


def notify_status_changed(
    db: Session,
    outbox: NotificationOutbox | None,
    application: Application,
    new_status: str,
    actor: UserSession,
    note: str | None,
) -> None:
    """
    Fan out a status write.

    - the client, unless the client made the change
    - assigned employees other than the actor
    - every admin other than the actor
    """
    with _best_effort(db, "status_changed", application.id):
        status_label = _label(new_status)
        data = {
            "application_id": application.id,
            "status": new_status,
            "updated_by": actor.full_name,
            "note": note,
        }
        common = {
            "type": NotificationType.INFO,
            "priority": NotificationPriority.MEDIUM,
            "data": data,
            "event": RealtimeEvent.STATUS_UPDATE,
        }

        if application.client_id != actor.user_id:
            notification_service.notify(
                db,
                outbox,
                application.client_id,
                "Application Status Updated",
                _with_note(
                    f"Your {_label(application.service_type)} application status has been "
                    f"updated to {status_label}",
                    note,
                ),
                **common,
            )

        staff_message = _with_note(
            f"Application {application.id} status updated to {status_label} by {actor.full_name}",
            note,
        )
        notified = notification_service.notify_many(
            db,
            outbox,
            application.assigned_employee_ids,
            "Application Status Updated",
            staff_message,
            exclude=[actor.user_id, application.client_id],
            **common,
        )
        already = {n.user_id for n in notified}
        notification_service.notify_many(
            db,
            outbox,
            notification_service.get_admin_ids(db),
            "Application Status Updated",
            staff_message,
            exclude=[actor.user_id, *already],
            **common,
        )


def notify_application_deleted(
    db: Session,
    outbox: NotificationOutbox | None,
    client_id: UUID,
    application_id: UUID,
    service_type: str,
    actor: UserSession,
) -> None:
    with _best_effort(db, "application_deleted", application_id):
        notification_service.notify(
            db,
            outbox,
            client_id,
            "Application Deleted",
            f"Your {_label(service_type)} application has been deleted by {actor.full_name}",
            type=NotificationType.WARNING,
            priority=NotificationPriority.HIGH,
            data={"application_id": application_id, "deleted_by": actor.full_name},
            event=RealtimeEvent.APPLICATION_DELETED,
        )


# =============================================================================
# Payments
# =============================================================================


def notify_payment_received(
    db: Session,
    outbox: NotificationOutbox | None,
    application: Application,
    payment: Payment,
) -> None:
    """A client settled an approved application; assigned employees can start."""
    with _best_effort(db, "payment_received", application.id):
        notification_service.notify_many(
            db,
            outbox,
            application.assigned_employee_ids,
            "Payment Received",
            f"Payment received for application {application.id}. Processing can now begin.",
            type=NotificationType.SUCCESS,
            priority=NotificationPriority.HIGH,
            data={
                "application_id": application.id,
                "payment_id": payment.id,
                "amount": _amount(payment.total_amount),
                "status": application.status,
            },
            event=RealtimeEvent.STATUS_UPDATE,
        )


def notify_payment_submitted(
    db: Session,
    outbox: NotificationOutbox | None,
    payment: Payment,
    client_name: str,
) -> None:
    """Admins are asked to verify a new receipt."""
    with _best_effort(db, "payment_submitted", payment.application_id):
        notification_service.notify_many(
            db,
            outbox,
            notification_service.get_admin_ids(db),
            "New Payment Receipt Uploaded",
            f"{client_name} uploaded a payment receipt for application {payment.application_id}.",
            type=NotificationType.INFO,
            priority=NotificationPriority.HIGH,
            data={
                "payment_id": payment.id,
                "application_id": payment.application_id,
                "payment_plan": payment.payment_plan,
                "amount": _amount(payment.total_amount),
            },
            event=RealtimeEvent.NEW_PAYMENT,
        )


def notify_installment_uploaded(
    db: Session,
    outbox: NotificationOutbox | None,
    payment: Payment,
    sequence: int,
    client_name: str,
) -> None:
    with _best_effort(db, "installment_uploaded", payment.application_id):
        notification_service.notify_many(
            db,
            outbox,
            notification_service.get_admin_ids(db),
            "New Installment Receipt Uploaded",
            f"{client_name} uploaded a receipt for installment {sequence + 1} "
            f"of application {payment.application_id}.",
            type=NotificationType.INFO,
            priority=NotificationPriority.HIGH,
            data={
                "payment_id": payment.id,
                "application_id": payment.application_id,
                "installment": sequence,
            },
            event=RealtimeEvent.NEW_PAYMENT,
        )


def notify_payment_verified(
    db: Session,
    outbox: NotificationOutbox | None,
    payment: Payment,
    approved: bool,
    admin_notes: str | None,
    sequence: int | None = None,
) -> None:
    """The client learns the outcome of a receipt (whole payment or one installment)."""
    with _best_effort(db, "payment_verified", payment.application_id):
        if sequence is None:
            title = "Payment Verified" if approved else "Payment Rejected"
            message = (
                "Your payment has been verified and approved. Your application is now active."
                if approved
                else _with_note(
                    "Your payment receipt was not approved. Please re-upload",
                    admin_notes,
                    prefix="Reason",
                )
            )
        else:
            title = "Installment Verified" if approved else "Installment Rejected"
            message = (
                f"Your payment for installment {sequence + 1} has been verified and approved."
                if approved
                else _with_note(
                    f"Your payment for installment {sequence + 1} has been rejected. "
                    "Please re-upload",
                    admin_notes,
                    prefix="Reason",
                )
            )

        notification_service.notify(
            db,
            outbox,
            payment.client_id,
            title,
            message,
            type=NotificationType.SUCCESS if approved else NotificationType.ERROR,
            priority=NotificationPriority.HIGH,
            data={
                "payment_id": payment.id,
                "application_id": payment.application_id,
                "status": payment.status,
                "installment": sequence,
                "admin_notes": admin_notes,
            },
            event=RealtimeEvent.PAYMENT_VERIFICATION,
        )



# =============================================================================
# Tasks and support tickets
# =============================================================================


def _work_priority(priority: str) -> NotificationPriority:
    if priority == WorkPriority.URGENT.value:
        return NotificationPriority.HIGH
    return NotificationPriority.MEDIUM


TICKET_STATUS_PHRASES = {
    TicketStatus.IN_PROGRESS.value: "is now being processed",
    TicketStatus.RESOLVED.value: "has been resolved",
    TicketStatus.CLOSED.value: "has been closed",
}


def notify_task_assigned(
    db: Session,
    outbox: NotificationOutbox | None,
    task: Task,
    actor: UserSession,
) -> None:
    with _best_effort(db, "task_assigned", task.application_id):
        notification_service.notify_many(
            db,
            outbox,
            [task.assigned_to_id],
            "New Task Assigned",
            f'You have been assigned the task "{task.title}" by {actor.full_name}',
            exclude=[actor.user_id],
            type=NotificationType.INFO,
            priority=_work_priority(task.priority),
            data={
                "task_id": task.id,
                "application_id": task.application_id,
                "priority": task.priority,
                "due_date": task.due_date,
                "assigned_by": actor.full_name,
            },
            event=RealtimeEvent.TASK_ASSIGNMENT,
        )


def notify_task_status_changed(
    db: Session,
    outbox: NotificationOutbox | None,
    task: Task,
    actor: UserSession,
    note: str | None,
) -> None:
    """The task creator and every admin, never the actor."""
    with _best_effort(db, "task_status_changed", task.application_id):
        recipients = [task.created_by_id, *notification_service.get_admin_ids(db)]
        notification_service.notify_many(
            db,
            outbox,
            [user_id for user_id in recipients if user_id is not None],
            "Task Status Updated",
            _with_note(
                f'Task "{task.title}" status updated to {_label(task.status)} '
                f"by {actor.full_name}",
                note,
            ),
            exclude=[actor.user_id],
            type=NotificationType.INFO,
            priority=NotificationPriority.MEDIUM,
            data={
                "task_id": task.id,
                "status": task.status,
                "updated_by": actor.full_name,
                "note": note,
            },
            event=RealtimeEvent.TASK_STATUS_UPDATE,
        )


def notify_ticket_created(
    db: Session,
    outbox: NotificationOutbox | None,
    ticket: Ticket,
    client_name: str,
) -> None:
    with _best_effort(db, "ticket_created"):
        notification_service.notify_many(
            db,
            outbox,
            notification_service.get_admin_ids(db),
            "New Support Ticket Received",
            f'A new {ticket.priority} priority ticket "{ticket.title}" '
            f"has been submitted by {client_name}",
            type=NotificationType.INFO,
            priority=_work_priority(ticket.priority),
            data={
                "ticket_id": ticket.id,
                "priority": ticket.priority,
                "category": ticket.category,
                "submitted_by": client_name,
            },
            event=RealtimeEvent.NEW_TICKET,
        )


def notify_ticket_assigned(
    db: Session,
    outbox: NotificationOutbox | None,
    ticket: Ticket,
    employee_name: str,
    actor: UserSession,
) -> None:
    """The assignee gets the ticket; the client hears it is being worked on."""
    with _best_effort(db, "ticket_assigned"):
        data = {
            "ticket_id": ticket.id,
            "status": ticket.status,
            "assigned_by": actor.full_name,
            "assigned_to": employee_name,
        }
        notification_service.notify_many(
            db,
            outbox,
            [ticket.assigned_to_id],
            "New Ticket Assignment",
            f'You have been assigned to handle ticket "{ticket.title}" by {actor.full_name}',
            exclude=[actor.user_id],
            type=NotificationType.INFO,
            priority=_work_priority(ticket.priority),
            data=data,
            event=RealtimeEvent.TICKET_ASSIGNMENT,
        )
        notification_service.notify(
            db,
            outbox,
            ticket.user_id,
            "Ticket Assigned",
            f'Your ticket "{ticket.title}" has been assigned to our support team '
            "and is now being processed",
            type=NotificationType.SUCCESS,
            priority=NotificationPriority.MEDIUM,
            data=data,
            event=RealtimeEvent.TICKET_ASSIGNMENT,
        )


def notify_ticket_status_changed(
    db: Session,
    outbox: NotificationOutbox | None,
    ticket: Ticket,
    actor: UserSession,
) -> None:
    """The client always hears; admins hear when an employee made the change."""
    with _best_effort(db, "ticket_status_changed"):
        phrase = TICKET_STATUS_PHRASES.get(
            ticket.status, f"status has been updated to {_label(ticket.status)}"
        )
        data = {
            "ticket_id": ticket.id,
            "status": ticket.status,
            "updated_by": actor.full_name,
        }
        notification_service.notify(
            db,
            outbox,
            ticket.user_id,
            "Ticket Status Updated",
            f'Your ticket "{ticket.title}" {phrase} by {actor.full_name}',
            type=(
                NotificationType.SUCCESS
                if ticket.status == TicketStatus.RESOLVED.value
                else NotificationType.INFO
            ),
            priority=NotificationPriority.MEDIUM,
            data=data,
            event=RealtimeEvent.TICKET_STATUS,
        )
        if actor.role == Role.EMPLOYEE:
            notification_service.notify_many(
                db,
                outbox,
                notification_service.get_admin_ids(db),
                "Ticket Status Updated",
                f'Ticket "{ticket.title}" status updated to {_label(ticket.status)} '
                f"by {actor.full_name}",
                type=NotificationType.INFO,
                priority=NotificationPriority.LOW,
                data=data,
                event=RealtimeEvent.TICKET_STATUS,
            )
