"""Status Router - direct status writes by staff."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from bpm.core.deps import get_current_session, get_db, get_outbox, require_csrf_header
from bpm.schemas.application import ApplicationRead, StatusUpdateRequest
from bpm.schemas.auth import UserSession
from bpm.schemas.common import ApiResponse, ok
from bpm.services import application_service
from bpm.services.notification_dispatch import NotificationOutbox

router = APIRouter()


@router.patch(
    "/{application_id}/update",
    response_model=ApiResponse[ApplicationRead],
    dependencies=[Depends(require_csrf_header)],
)
def update_status(
    application_id: UUID,
    data: StatusUpdateRequest,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
    outbox: NotificationOutbox = Depends(get_outbox),
):
    """
    Set the status of an application.

    Unknown statuses are rejected with 400; moves outside the transition
    table are rejected the same way. Writes one timeline entry.
    """
    application = application_service.update_status(
        db, outbox, application_id, session, data.status, data.note
    )
    return ok(ApplicationRead.from_model(application), "Status updated successfully")
