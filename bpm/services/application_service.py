"""
Application Lifecycle Manager.

Owns every status change of an application: submission, review,
assignment, direct payment, staff status/field updates and deletion.
Each operation checks authorization and preconditions, commits the
primary write, then records the timeline entry and queues notifications.
Those secondary effects are best-effort and never fail the operation.
"""

import calendar
import logging
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session, selectinload

from bpm.core import permissions
from bpm.core.config import settings
from bpm.core.errors import (
    ConflictError,
    InvalidTransition,
    NotFoundError,
    PermissionDenied,
    ValidationFailed,
)
from bpm.core.pricing import calculate_total, split_installments
from bpm.core.request_context import get_request_id
from bpm.core.status_rules import REVIEWABLE, ensure_transition, parse_status
from bpm.core.structured_logging import build_log_context
from bpm.db.enums import (
    ROLES_ASSIGNABLE,
    ApplicationStatus,
    PaymentMethod,
    PaymentPlan,
    PaymentStatus,
    ReviewAction,
    Role,
)
from bpm.db.models import (
    Application,
    ApplicationAssignment,
    ApplicationDocument,
    Payment,
    PaymentInstallment,
    User,
)
from bpm.db.types import utcnow
from bpm.schemas.application import ApplicationCreate
from bpm.schemas.auth import UserSession
from bpm.services import notification_facade, timeline_service
from bpm.services.notification_dispatch import NotificationOutbox

logger = logging.getLogger(__name__)

DEFAULT_ASSIGNMENT_TASK = "Application processing"

# Fields an assigned employee may edit besides status
EMPLOYEE_EDITABLE_FIELDS = (
    "external_companies_count",
    "external_companies_details",
    "project_estimated_value",
    "family_members",
    "need_virtual_office",
    "company_arranges_external_companies",
)


def add_months(value: datetime, months: int) -> datetime:
    """Same day `months` later, clamped to the end of shorter months."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def _log_transition(
    application: Application, old: str, new: str, session: UserSession
) -> None:
    logger.info(
        "application %s: %s -> %s",
        application.id,
        old,
        new,
        extra={
            "context": build_log_context(
                user_id=str(session.user_id),
                role=session.role.value,
                request_id=get_request_id(),
                application_id=str(application.id),
            )
        },
    )


def _payment_approved(application: Application) -> bool:
    payment = application.payment
    return payment is not None and payment.status == PaymentStatus.APPROVED.value


# =============================================================================
# Queries
# =============================================================================


def _base_query(db: Session):
    return db.query(Application).options(
        selectinload(Application.client),
        selectinload(Application.assignments).selectinload(ApplicationAssignment.employee),
        selectinload(Application.payment).selectinload(Payment.installments),
    )


def get_application_or_404(db: Session, application_id: UUID) -> Application:
    application = db.get(Application, application_id)
    if not application:
        raise NotFoundError("Application not found")
    return application


def get_application(db: Session, application_id: UUID, session: UserSession) -> Application:
    """Fetch one application the caller may see."""
    application = get_application_or_404(db, application_id)
    permissions.check_application_access(session, application)
    return application


def list_applications(
    db: Session,
    session: UserSession,
    status: str | None = None,
) -> list[Application]:
    """
    Applications visible to the caller, newest first.

    - client: own applications
    - employee: applications assigned to them
    - admin: everything
    """
    query = _base_query(db)
    if session.role == Role.CLIENT:
        query = query.filter(Application.client_id == session.user_id)
    elif session.role == Role.EMPLOYEE:
        query = query.filter(
            Application.assignments.any(ApplicationAssignment.employee_id == session.user_id)
        )
    if status:
        query = query.filter(Application.status == parse_status(status).value)
    return query.order_by(Application.created_at.desc()).all()


def list_assigned_applications(
    db: Session,
    employee_id: UUID,
    status: str | None = None,
) -> list[Application]:
    query = _base_query(db).filter(
        Application.assignments.any(ApplicationAssignment.employee_id == employee_id)
    )
    if status:
        query = query.filter(Application.status == parse_status(status).value)
    return query.order_by(Application.created_at.desc()).all()


# =============================================================================
# Create
# =============================================================================


def create_application(
    db: Session,
    outbox: NotificationOutbox | None,
    session: UserSession,
    data: ApplicationCreate,
) -> Application:
    """
    Submit a new application for the calling client.

    Creates the application, its supporting documents and its pending
    payment in one commit, then writes the initial timeline entry and
    notifies every admin.
    """
    if session.role != Role.CLIENT:
        raise PermissionDenied("Only clients can submit applications")

    client = db.get(User, session.user_id)
    if not client:
        raise NotFoundError("Authenticated user not found")

    companies_count = data.external_companies_count or len(data.external_companies_details)
    total = calculate_total(data.service_type, data.need_virtual_office, companies_count)
    now = utcnow()

    application = Application(
        client_id=client.id,
        service_type=data.service_type.value,
        status=ApplicationStatus.SUBMITTED.value,
        external_companies_count=companies_count,
        external_companies_details=[
            c.model_dump(mode="json") for c in data.external_companies_details
        ],
        project_estimated_value=(
            Decimal(str(data.project_estimated_value))
            if data.project_estimated_value is not None
            else None
        ),
        family_members=[m.model_dump(mode="json") for m in data.family_members],
        need_virtual_office=data.need_virtual_office,
        company_arranges_external_companies=data.company_arranges_external_companies,
        created_at=now,
        updated_at=now,
    )
    application.documents = [
        ApplicationDocument(type=doc.type.value, file_url=doc.file_url, uploaded_by_id=client.id)
        for doc in data.documents
    ]
    application.payment = Payment(
        client_id=client.id,
        total_amount=total,
        currency=settings.PAYMENT_CURRENCY,
        payment_plan=PaymentPlan.FULL.value,
        status=PaymentStatus.PENDING.value,
        due_date=add_months(now, 1),
    )
    db.add(application)
    db.commit()
    db.refresh(application)

    logger.info(
        "application %s submitted (%s, total %s)",
        application.id,
        application.service_type,
        total,
        extra={
            "context": build_log_context(
                user_id=str(session.user_id),
                role=session.role.value,
                request_id=get_request_id(),
                application_id=str(application.id),
            )
        },
    )

    # Creation entry starts the progress bar at zero
    timeline_service.record_entry_safely(
        db,
        application.id,
        ApplicationStatus.SUBMITTED,
        "Application submitted",
        client.id,
        progress=0,
    )
    notification_facade.notify_new_application(db, outbox, application, client.full_name)
    return application


# =============================================================================
# Review
# =============================================================================


def review_application(
    db: Session,
    outbox: NotificationOutbox | None,
    application_id: UUID,
    session: UserSession,
    action: ReviewAction,
    reason: str | None = None,
) -> Application:
    """Approve or reject a submitted / under-review application."""
    application = get_application_or_404(db, application_id)
    permissions.check_staff_access(session, application, "review applications")

    current = parse_status(application.status)
    if current not in REVIEWABLE:
        raise InvalidTransition(f"Application cannot be reviewed. Current status: {current.value}")

    reason = reason.strip() if reason else None
    approve = ReviewAction(action) == ReviewAction.APPROVE
    if not approve and not reason:
        raise ValidationFailed(
            "Reason is required for rejection",
            errors=[{"field": "reason", "message": "Required when rejecting"}],
        )

    target = ensure_transition(
        current, ApplicationStatus.APPROVED if approve else ApplicationStatus.REJECTED
    )
    application.status = target.value
    if approve:
        application.approved_by_id = session.user_id
        application.approved_at = utcnow()
    db.commit()
    db.refresh(application)
    _log_transition(application, current.value, target.value, session)

    if approve:
        note = reason or f"Application approved by {session.full_name}"
    else:
        note = reason
    timeline_service.record_entry_safely(db, application.id, target, note, session.user_id)
    notification_facade.notify_review_decision(
        db, outbox, application, session, approved=approve, reason=reason
    )
    return application


# =============================================================================
# Assign
# =============================================================================


def assign_application(
    db: Session,
    outbox: NotificationOutbox | None,
    application_id: UUID,
    session: UserSession,
    employee_ids: list[UUID],
    note: str | None = None,
    task: str | None = None,
) -> Application:
    """
    Set the assigned-employee list of an application.

    Idempotent: employees already assigned keep their assignment row and
    timestamp, employees no longer listed are removed. A submitted
    application moves to under_review; later statuses are left alone.
    Only newly added employees are notified, plus the client.
    """
    permissions.check_admin(session, "assign applications")
    application = get_application_or_404(db, application_id)

    wanted = list(dict.fromkeys(employee_ids))
    if not wanted:
        raise ValidationFailed(
            "Employee IDs array is required and must not be empty",
            errors=[{"field": "employee_ids", "message": "At least one employee is required"}],
        )

    users = {u.id: u for u in db.query(User).filter(User.id.in_(wanted)).all()}
    allowed_roles = {r.value for r in ROLES_ASSIGNABLE}
    invalid = [
        employee_id
        for employee_id in wanted
        if employee_id not in users
        or users[employee_id].role not in allowed_roles
        or not users[employee_id].is_active
    ]
    if invalid:
        raise ValidationFailed(
            "One or more employee IDs are invalid or not employees",
            errors=[
                {"field": "employee_ids", "message": f"{employee_id} is not an active employee"}
                for employee_id in invalid
            ],
        )

    existing = {a.employee_id: a for a in application.assignments}
    for assignment in list(application.assignments):
        if assignment.employee_id not in set(wanted):
            application.assignments.remove(assignment)
    added = [employee_id for employee_id in wanted if employee_id not in existing]
    for employee_id in added:
        application.assignments.append(
            ApplicationAssignment(employee_id=employee_id, task=task or DEFAULT_ASSIGNMENT_TASK)
        )

    current = parse_status(application.status)
    transitioned = current == ApplicationStatus.SUBMITTED
    if transitioned:
        application.status = ensure_transition(current, ApplicationStatus.UNDER_REVIEW).value
    db.commit()
    db.refresh(application)

    if transitioned:
        _log_transition(application, current.value, application.status, session)

    names = ", ".join(users[employee_id].full_name for employee_id in wanted)
    timeline_service.record_entry_safely(
        db,
        application.id,
        application.status,
        note or f"Assigned to {names}",
        session.user_id,
        progress=25 if transitioned else 0,
    )
    notification_facade.notify_application_assigned(db, outbox, application, added, session, note)
    return application


# =============================================================================
# Make payment
# =============================================================================


def make_payment(
    db: Session,
    outbox: NotificationOutbox | None,
    application_id: UUID,
    session: UserSession,
    amount: float,
    method: PaymentMethod,
    plan: PaymentPlan = PaymentPlan.FULL,
    transaction_ref: str | None = None,
) -> Application:
    """
    Settle an approved application directly (the client pays in full).

    Succeeds once per application: an approved or submitted payment means
    the application is already paid or awaiting verification.
    """
    application = get_application_or_404(db, application_id)
    permissions.check_owner(session, application, "pay for this application")

    payment = application.payment
    if payment is not None and payment.status in (
        PaymentStatus.APPROVED.value,
        PaymentStatus.SUBMITTED.value,
    ):
        raise ConflictError("Payment already exists for this application")

    if application.status != ApplicationStatus.APPROVED.value:
        raise ConflictError("Payment allowed only for approved applications")

    if payment is None:
        payment = Payment(
            client_id=application.client_id,
            total_amount=calculate_total(
                application.service_type,
                application.need_virtual_office,
                application.external_companies_count,
            ),
            currency=settings.PAYMENT_CURRENCY,
            due_date=add_months(utcnow(), 1),
        )
        application.payment = payment

    paid = Decimal(str(amount)).quantize(Decimal("0.01"))
    if paid != Decimal(payment.total_amount).quantize(Decimal("0.01")):
        raise ValidationFailed(
            f"Payment amount must equal the application total of {payment.total_amount}",
            errors=[{"field": "amount", "message": "Does not match the application total"}],
        )

    target = ensure_transition(
        application.status, ApplicationStatus.IN_PROCESS, payment_approved=True
    )
    now = utcnow()
    plan = PaymentPlan(plan)

    if plan == PaymentPlan.INSTALLMENTS:
        payment.installments.clear()
        db.flush()
        payment.installments = [
            PaymentInstallment(
                sequence=index,
                amount=part,
                status=PaymentStatus.APPROVED.value,
                uploaded_at=now,
            )
            for index, part in enumerate(split_installments(payment.total_amount))
        ]
    payment.payment_plan = plan.value
    payment.status = PaymentStatus.APPROVED.value
    payment.method = PaymentMethod(method).value
    payment.transaction_ref = transaction_ref
    payment.paid_by_id = session.user_id
    payment.submitted_at = now

    old_status = application.status
    application.status = target.value
    db.commit()
    db.refresh(application)
    _log_transition(application, old_status, target.value, session)

    timeline_service.record_entry_safely(
        db,
        application.id,
        target,
        f"Payment of {payment.total_amount} {payment.currency} received via {payment.method}",
        session.user_id,
    )
    notification_facade.notify_payment_received(db, outbox, application, payment)
    return application


# =============================================================================
# Status and field updates
# =============================================================================


def update_status(
    db: Session,
    outbox: NotificationOutbox | None,
    application_id: UUID,
    session: UserSession,
    status: str,
    note: str | None = None,
) -> Application:
    """Staff status write (assigned employee or admin)."""
    return update_application_fields(
        db, outbox, application_id, session, {"status": status}, note=note
    )


def update_application_fields(
    db: Session,
    outbox: NotificationOutbox | None,
    application_id: UUID,
    session: UserSession,
    updates: dict,
    note: str | None = None,
) -> Application:
    """
    Apply an allow-listed field update, optionally including `status`.

    Keys outside the allow-list are ignored. Every call appends one
    timeline entry whose progress follows the status table. A status
    write notifies the client, co-assigned employees and admins.
    """
    application = get_application_or_404(db, application_id)
    permissions.check_staff_access(session, application, "update application status")

    status_value = updates.get("status")
    old_status = application.status
    target = None
    if status_value is not None:
        target = ensure_transition(
            old_status, status_value, payment_approved=_payment_approved(application)
        )

    for field in EMPLOYEE_EDITABLE_FIELDS:
        if field not in updates or updates[field] is None:
            continue
        value = updates[field]
        if field == "project_estimated_value":
            value = Decimal(str(value))
        elif field in ("external_companies_details", "family_members"):
            value = [dict(item) for item in value]
        setattr(application, field, value)

    if target is not None:
        application.status = target.value
        if target == ApplicationStatus.APPROVED and old_status != target.value:
            application.approved_by_id = session.user_id
            application.approved_at = utcnow()
    db.commit()
    db.refresh(application)

    if target is not None and target.value != old_status:
        _log_transition(application, old_status, target.value, session)

    if note:
        entry_note = note
    elif target is not None:
        entry_note = f"Status updated to {target.value.replace('_', ' ')}"
    else:
        entry_note = "Application data updated by employee"
    timeline_service.record_entry_safely(
        db, application.id, application.status, entry_note, session.user_id
    )

    if target is not None:
        notification_facade.notify_status_changed(
            db, outbox, application, target.value, session, note
        )
    return application


# =============================================================================
# Delete
# =============================================================================


def delete_application(
    db: Session,
    outbox: NotificationOutbox | None,
    application_id: UUID,
    session: UserSession,
) -> None:
    """Delete an application with its documents, timeline, payment, assignments and messages."""
    permissions.check_admin(session, "delete applications")
    application = get_application_or_404(db, application_id)

    client_id = application.client_id
    service_type = application.service_type
    db.delete(application)
    db.commit()

    logger.info(
        "application %s deleted",
        application_id,
        extra={
            "context": build_log_context(
                user_id=str(session.user_id),
                role=session.role.value,
                request_id=get_request_id(),
                application_id=str(application_id),
            )
        },
    )
    notification_facade.notify_application_deleted(
        db, outbox, client_id, application_id, service_type, session
    )
