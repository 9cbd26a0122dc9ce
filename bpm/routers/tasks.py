"""Tasks Router - staff work items."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from bpm.core.deps import get_current_session, get_db, get_outbox, require_csrf_header
from bpm.db.enums import TaskStatus, WorkPriority
from bpm.schemas.auth import UserSession
from bpm.schemas.common import ApiResponse, ok
from bpm.schemas.task import TaskCreate, TaskRead, TaskStatusUpdate
from bpm.services import task_service
from bpm.services.notification_dispatch import NotificationOutbox

router = APIRouter()


@router.post(
    "",
    status_code=201,
    response_model=ApiResponse[TaskRead],
    dependencies=[Depends(require_csrf_header)],
)
def create_task(
    data: TaskCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
    outbox: NotificationOutbox = Depends(get_outbox),
):
    task = task_service.create_task(db, outbox, session, data)
    return ok(TaskRead.from_model(task), "Task created and assigned successfully")


@router.get("", response_model=ApiResponse[list[TaskRead]])
def list_tasks(
    status: TaskStatus | None = Query(None),
    priority: WorkPriority | None = Query(None),
    assigned_to_id: UUID | None = Query(None),
    application_id: UUID | None = Query(None),
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Tasks visible to the caller (all for admins)."""
    tasks = task_service.list_tasks(
        db,
        session,
        status=status,
        priority=priority,
        assigned_to_id=assigned_to_id,
        application_id=application_id,
    )
    return ok([TaskRead.from_model(t) for t in tasks])


@router.get("/my", response_model=ApiResponse[list[TaskRead]])
def list_my_tasks(
    status: TaskStatus | None = Query(None),
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Tasks assigned to the caller."""
    tasks = task_service.list_tasks(db, session, status=status, assigned_to_id=session.user_id)
    return ok([TaskRead.from_model(t) for t in tasks])


@router.get("/{task_id}", response_model=ApiResponse[TaskRead])
def get_task(
    task_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return ok(TaskRead.from_model(task_service.get_task(db, task_id, session)))


@router.patch(
    "/{task_id}/status",
    response_model=ApiResponse[TaskRead],
    dependencies=[Depends(require_csrf_header)],
)
def update_task_status(
    task_id: UUID,
    data: TaskStatusUpdate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
    outbox: NotificationOutbox = Depends(get_outbox),
):
    task = task_service.update_task_status(db, outbox, task_id, session, data.status, data.note)
    return ok(TaskRead.from_model(task), "Task status updated successfully")


@router.delete(
    "/{task_id}",
    dependencies=[Depends(require_csrf_header)],
)
def delete_task(
    task_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    task_service.delete_task(db, task_id, session)
    return ok(message="Task deleted successfully")
