"""
Payment verification subflow.

Clients upload receipts (whole payment or per installment) for an
approved application; admins approve or reject them. Approving the whole
payment, or the last outstanding installment, approves the payment and
moves the application from approved to in_process.
"""

import logging
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from bpm.core import permissions
from bpm.core.errors import ConflictError, NotFoundError
from bpm.core.pricing import split_installments
from bpm.core.status_rules import ensure_transition
from bpm.db.enums import (
    ApplicationStatus,
    PaymentPlan,
    PaymentStatus,
    VerificationAction,
)
from bpm.db.models import Application, Payment, PaymentInstallment
from bpm.db.types import utcnow
from bpm.schemas.auth import UserSession
from bpm.services import notification_facade, timeline_service
from bpm.services.notification_dispatch import NotificationOutbox

logger = logging.getLogger(__name__)

RESUBMITTABLE = (PaymentStatus.PENDING.value, PaymentStatus.REJECTED.value)

# Application statuses in which an approved payment is consistent
PAYABLE_STATUSES = (
    ApplicationStatus.APPROVED.value,
    ApplicationStatus.IN_PROCESS.value,
    ApplicationStatus.COMPLETED.value,
)


# =============================================================================
# Queries
# =============================================================================


def _query(db: Session):
    return db.query(Payment).options(selectinload(Payment.installments))


def get_payment_or_404(db: Session, payment_id: UUID) -> Payment:
    payment = db.get(Payment, payment_id)
    if not payment:
        raise NotFoundError("Payment not found")
    return payment


def get_payment(db: Session, payment_id: UUID, session: UserSession) -> Payment:
    """Owner, assigned employee, or admin."""
    payment = get_payment_or_404(db, payment_id)
    permissions.check_application_access(session, payment.application)
    return payment


def list_client_payments(db: Session, client_id: UUID) -> list[Payment]:
    return (
        _query(db)
        .filter(Payment.client_id == client_id)
        .order_by(Payment.created_at.desc())
        .all()
    )


def list_pending_payments(db: Session) -> list[Payment]:
    """Payments waiting for an admin: a submitted receipt or a submitted installment."""
    return (
        _query(db)
        .filter(
            or_(
                Payment.status == PaymentStatus.SUBMITTED.value,
                Payment.installments.any(
                    PaymentInstallment.status == PaymentStatus.SUBMITTED.value
                ),
            )
        )
        .order_by(Payment.updated_at.desc())
        .all()
    )


def list_all_payments(db: Session, status: str | None = None) -> list[Payment]:
    query = _query(db)
    if status:
        query = query.filter(Payment.status == PaymentStatus(status).value)
    return query.order_by(Payment.created_at.desc()).all()


def _installment(payment: Payment, sequence: int) -> PaymentInstallment:
    for installment in payment.installments:
        if installment.sequence == sequence:
            return installment
    raise NotFoundError("Installment not found")


# =============================================================================
# Client side
# =============================================================================


def submit_payment(
    db: Session,
    outbox: NotificationOutbox | None,
    payment_id: UUID,
    session: UserSession,
    plan: PaymentPlan,
    receipt_url: str,
) -> Payment:
    """
    Choose a plan and upload the first receipt.

    Full plan: the receipt covers the whole amount. Installments: the
    total is split into three parts and the receipt covers the first.
    Allowed on a pending payment, or again after a rejection.
    """
    payment = get_payment_or_404(db, payment_id)
    application = payment.application
    permissions.check_owner(session, application, "submit payment for this application")

    if application.status != ApplicationStatus.APPROVED.value:
        raise ConflictError("Payment can only be submitted for approved applications")
    if payment.status not in RESUBMITTABLE:
        raise ConflictError("Payment has already been submitted")

    now = utcnow()
    plan = PaymentPlan(plan)
    payment.installments.clear()
    db.flush()

    if plan == PaymentPlan.FULL:
        payment.receipt_url = receipt_url
    else:
        payment.receipt_url = None
        payment.installments = [
            PaymentInstallment(
                sequence=index,
                amount=part,
                status=(
                    PaymentStatus.SUBMITTED.value if index == 0 else PaymentStatus.PENDING.value
                ),
                receipt_url=receipt_url if index == 0 else None,
                uploaded_at=now if index == 0 else None,
            )
            for index, part in enumerate(split_installments(payment.total_amount))
        ]

    payment.payment_plan = plan.value
    payment.status = PaymentStatus.SUBMITTED.value
    payment.submitted_at = now
    payment.verified_by_admin = False
    payment.verified_at = None
    payment.verified_by_id = None
    payment.admin_notes = None
    db.commit()
    db.refresh(payment)

    logger.info("payment %s submitted (%s plan)", payment.id, plan.value)
    notification_facade.notify_payment_submitted(db, outbox, payment, session.full_name)
    return payment


def upload_installment(
    db: Session,
    outbox: NotificationOutbox | None,
    payment_id: UUID,
    sequence: int,
    session: UserSession,
    receipt_url: str,
) -> Payment:
    """Upload the receipt for one installment (pending, or rejected and retried)."""
    payment = get_payment_or_404(db, payment_id)
    application = payment.application
    permissions.check_owner(session, application, "upload receipts for this application")

    if payment.payment_plan != PaymentPlan.INSTALLMENTS.value or not payment.installments:
        raise ConflictError("Payment is not on an installment plan")
    if application.status != ApplicationStatus.APPROVED.value:
        raise ConflictError("Payment can only be submitted for approved applications")

    installment = _installment(payment, sequence)
    if installment.status not in RESUBMITTABLE:
        raise ConflictError("Installment receipt has already been submitted")

    installment.receipt_url = receipt_url
    installment.status = PaymentStatus.SUBMITTED.value
    installment.uploaded_at = utcnow()
    installment.verified_by_admin = False
    installment.verified_at = None
    installment.verified_by_id = None
    installment.admin_notes = None
    db.commit()
    db.refresh(payment)

    notification_facade.notify_installment_uploaded(
        db, outbox, payment, sequence, session.full_name
    )
    return payment


# =============================================================================
# Admin side
# =============================================================================


def _check_payable(application: Application) -> None:
    if application.status not in PAYABLE_STATUSES:
        raise ConflictError(
            f"Cannot approve payment while application is {application.status}"
        )


def _start_processing(application: Application) -> bool:
    """Move an approved application to in_process. Caller commits."""
    if application.status != ApplicationStatus.APPROVED.value:
        return False
    target = ensure_transition(
        application.status, ApplicationStatus.IN_PROCESS, payment_approved=True
    )
    application.status = target.value
    return True


def _record_processing_started(
    db: Session,
    outbox: NotificationOutbox | None,
    payment: Payment,
    session: UserSession,
) -> None:
    application = payment.application
    logger.info(
        "application %s: %s -> %s (payment verified)",
        application.id,
        ApplicationStatus.APPROVED.value,
        ApplicationStatus.IN_PROCESS.value,
    )
    timeline_service.record_entry_safely(
        db,
        application.id,
        ApplicationStatus.IN_PROCESS,
        "Payment verified by admin",
        session.user_id,
    )
    notification_facade.notify_payment_received(db, outbox, application, payment)


def verify_payment(
    db: Session,
    outbox: NotificationOutbox | None,
    payment_id: UUID,
    session: UserSession,
    action: VerificationAction,
    admin_notes: str | None = None,
) -> Payment:
    """Approve or reject a submitted full-plan receipt."""
    permissions.check_admin(session, "verify payments")
    payment = get_payment_or_404(db, payment_id)

    if payment.payment_plan != PaymentPlan.FULL.value:
        raise ConflictError("Installment payments are verified per installment")
    if payment.status != PaymentStatus.SUBMITTED.value:
        raise ConflictError("Only submitted payments can be verified")

    approve = VerificationAction(action) == VerificationAction.APPROVE
    if approve:
        _check_payable(payment.application)

    now = utcnow()
    payment.status = (PaymentStatus.APPROVED if approve else PaymentStatus.REJECTED).value
    payment.verified_by_admin = approve
    payment.verified_at = now
    payment.verified_by_id = session.user_id
    payment.admin_notes = admin_notes
    started = approve and _start_processing(payment.application)
    db.commit()
    db.refresh(payment)

    logger.info("payment %s %s by admin %s", payment.id, payment.status, session.user_id)
    notification_facade.notify_payment_verified(db, outbox, payment, approve, admin_notes)
    if started:
        _record_processing_started(db, outbox, payment, session)
    return payment


def verify_installment(
    db: Session,
    outbox: NotificationOutbox | None,
    payment_id: UUID,
    sequence: int,
    session: UserSession,
    action: VerificationAction,
    admin_notes: str | None = None,
) -> Payment:
    """Approve or reject one submitted installment; the last approval approves the payment."""
    permissions.check_admin(session, "verify payments")
    payment = get_payment_or_404(db, payment_id)

    if payment.payment_plan != PaymentPlan.INSTALLMENTS.value:
        raise ConflictError("Payment is not on an installment plan")
    installment = _installment(payment, sequence)
    if installment.status != PaymentStatus.SUBMITTED.value:
        raise ConflictError("Only submitted installments can be verified")

    approve = VerificationAction(action) == VerificationAction.APPROVE
    completes = approve and all(
        i.status == PaymentStatus.APPROVED.value
        for i in payment.installments
        if i.sequence != sequence
    )
    if completes:
        _check_payable(payment.application)

    now = utcnow()
    installment.status = (PaymentStatus.APPROVED if approve else PaymentStatus.REJECTED).value
    installment.verified_by_admin = approve
    installment.verified_at = now
    installment.verified_by_id = session.user_id
    installment.admin_notes = admin_notes
    if completes:
        payment.status = PaymentStatus.APPROVED.value
        payment.verified_by_admin = True
        payment.verified_at = now
        payment.verified_by_id = session.user_id
    started = completes and _start_processing(payment.application)
    db.commit()
    db.refresh(payment)

    logger.info(
        "payment %s installment %d %s by admin %s",
        payment.id,
        sequence,
        installment.status,
        session.user_id,
    )
    notification_facade.notify_payment_verified(
        db, outbox, payment, approve, admin_notes, sequence=sequence
    )
    if started:
        _record_processing_started(db, outbox, payment, session)
    return payment
