"""Employees Router - staff directory and the employee work queue."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from bpm.core.deps import (
    get_current_session,
    get_db,
    get_outbox,
    require_csrf_header,
    require_roles,
)
from bpm.db.enums import Role
from bpm.schemas.application import ApplicationRead, EmployeeApplicationUpdate
from bpm.schemas.auth import UserSession
from bpm.schemas.common import ApiResponse, ok
from bpm.schemas.user import EmployeeRead
from bpm.services import application_service, user_service
from bpm.services.notification_dispatch import NotificationOutbox

router = APIRouter()


@router.get(
    "",
    response_model=ApiResponse[list[EmployeeRead]],
    dependencies=[Depends(require_roles([Role.ADMIN]))],
)
def list_employees(db: Session = Depends(get_db)):
    """Assignable staff with their assignment counts."""
    rows = user_service.list_employees(db)
    return ok([
        EmployeeRead.model_validate(user).model_copy(update={"assigned_count": count})
        for user, count in rows
    ])


@router.get("/applications", response_model=ApiResponse[list[ApplicationRead]])
def list_my_applications(
    status: str | None = Query(None),
    session: UserSession = Depends(require_roles([Role.EMPLOYEE, Role.ADMIN])),
    db: Session = Depends(get_db),
):
    """Applications assigned to the calling employee."""
    applications = application_service.list_assigned_applications(
        db, session.user_id, status=status
    )
    return ok([ApplicationRead.from_model(a) for a in applications])


@router.get("/applications/{application_id}", response_model=ApiResponse[ApplicationRead])
def get_assigned_application(
    application_id: UUID,
    session: UserSession = Depends(require_roles([Role.EMPLOYEE, Role.ADMIN])),
    db: Session = Depends(get_db),
):
    application = application_service.get_application(db, application_id, session)
    return ok(ApplicationRead.from_model(application))


@router.patch(
    "/applications/{application_id}",
    response_model=ApiResponse[ApplicationRead],
    dependencies=[Depends(require_csrf_header)],
)
def update_assigned_application(
    application_id: UUID,
    data: EmployeeApplicationUpdate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
    outbox: NotificationOutbox = Depends(get_outbox),
):
    """Edit service details and/or status of an assigned application."""
    updates = data.model_dump(exclude_unset=True, exclude={"note"}, mode="json")
    application = application_service.update_application_fields(
        db, outbox, application_id, session, updates, note=data.note
    )
    return ok(ApplicationRead.from_model(application), "Application updated successfully")
