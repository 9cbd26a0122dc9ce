"""
Applications Router - /applications endpoints.

Clients submit and pay; staff review, assign and delete. Every mutation
goes through the lifecycle manager in application_service.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from bpm.core.deps import get_current_session, get_db, get_outbox, require_csrf_header
from bpm.schemas.application import (
    ApplicationCreate,
    ApplicationRead,
    AssignRequest,
    MakePaymentRequest,
    ReviewRequest,
    TimelineEntryRead,
)
from bpm.schemas.auth import UserSession
from bpm.schemas.common import ApiResponse, ok
from bpm.schemas.message import MessageRead
from bpm.services import application_service, message_service, timeline_service
from bpm.services.notification_dispatch import NotificationOutbox

router = APIRouter()


@router.post(
    "",
    status_code=201,
    response_model=ApiResponse[ApplicationRead],
    dependencies=[Depends(require_csrf_header)],
)
def create_application(
    data: ApplicationCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
    outbox: NotificationOutbox = Depends(get_outbox),
):
    """Submit an application. Creates its pending payment in the same step."""
    application = application_service.create_application(db, outbox, session, data)
    return ok(ApplicationRead.from_model(application), "Application submitted successfully")


@router.get("", response_model=ApiResponse[list[ApplicationRead]])
def list_applications(
    status: str | None = Query(None),
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Applications visible to the caller (own, assigned, or all for admins)."""
    applications = application_service.list_applications(db, session, status=status)
    return ok([ApplicationRead.from_model(a) for a in applications])


@router.get("/assigned", response_model=ApiResponse[list[ApplicationRead]])
def list_assigned_applications(
    status: str | None = Query(None),
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    applications = application_service.list_assigned_applications(
        db, session.user_id, status=status
    )
    return ok([ApplicationRead.from_model(a) for a in applications])


@router.get("/{application_id}", response_model=ApiResponse[ApplicationRead])
def get_application(
    application_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    application = application_service.get_application(db, application_id, session)
    return ok(ApplicationRead.from_model(application))


@router.patch(
    "/{application_id}/review",
    response_model=ApiResponse[ApplicationRead],
    dependencies=[Depends(require_csrf_header)],
)
def review_application(
    application_id: UUID,
    data: ReviewRequest,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
    outbox: NotificationOutbox = Depends(get_outbox),
):
    """Approve or reject a submitted / under-review application."""
    application = application_service.review_application(
        db, outbox, application_id, session, data.action, data.reason
    )
    return ok(ApplicationRead.from_model(application), f"Application {application.status}")


@router.post(
    "/{application_id}/payment",
    response_model=ApiResponse[ApplicationRead],
    dependencies=[Depends(require_csrf_header)],
)
def make_payment(
    application_id: UUID,
    data: MakePaymentRequest,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
    outbox: NotificationOutbox = Depends(get_outbox),
):
    application = application_service.make_payment(
        db,
        outbox,
        application_id,
        session,
        amount=data.amount,
        method=data.method,
        plan=data.plan,
        transaction_ref=data.transaction_ref,
    )
    return ok(ApplicationRead.from_model(application), "Payment recorded successfully")


@router.patch(
    "/{application_id}/assign",
    response_model=ApiResponse[ApplicationRead],
    dependencies=[Depends(require_csrf_header)],
)
def assign_application(
    application_id: UUID,
    data: AssignRequest,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
    outbox: NotificationOutbox = Depends(get_outbox),
):
    application = application_service.assign_application(
        db,
        outbox,
        application_id,
        session,
        employee_ids=data.employee_ids,
        note=data.note,
        task=data.task,
    )
    return ok(ApplicationRead.from_model(application), "Application assigned successfully")


@router.delete(
    "/{application_id}",
    dependencies=[Depends(require_csrf_header)],
)
def delete_application(
    application_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
    outbox: NotificationOutbox = Depends(get_outbox),
):
    application_service.delete_application(db, outbox, application_id, session)
    return ok(message="Application deleted successfully")


@router.get("/{application_id}/messages", response_model=ApiResponse[list[MessageRead]])
def list_messages(
    application_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Chat history for one application, oldest first."""
    messages = message_service.list_messages(db, application_id, session)
    return ok([MessageRead.model_validate(m) for m in messages])


@router.get("/{application_id}/timeline", response_model=ApiResponse[list[TimelineEntryRead]])
def list_timeline(
    application_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Timeline entries for one application, newest first."""
    application = application_service.get_application(db, application_id, session)
    entries = timeline_service.list_entries(db, application.id)
    return ok([TimelineEntryRead.from_model(e) for e in entries])
