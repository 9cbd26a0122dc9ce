"""
Task Service - internal work items for staff.

Admins and employees hand tasks to each other, optionally against an
application. Employees see only tasks they were given or created; admins
see everything.
"""

import logging
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from bpm.core import permissions
from bpm.core.errors import NotFoundError, PermissionDenied, ValidationFailed
from bpm.db.enums import ROLES_ASSIGNABLE, TaskStatus, WorkPriority
from bpm.db.models import Application, Task, User
from bpm.db.types import utcnow
from bpm.schemas.auth import UserSession
from bpm.schemas.task import TaskCreate
from bpm.services import notification_facade
from bpm.services.notification_dispatch import NotificationOutbox

logger = logging.getLogger(__name__)


def _check_staff(session: UserSession, action: str) -> None:
    if not permissions.is_staff(session):
        raise PermissionDenied(f"Only staff can {action}")


def _is_party(session: UserSession, task: Task) -> bool:
    return session.user_id in (task.assigned_to_id, task.created_by_id)


def _query(db: Session):
    return db.query(Task).options(
        selectinload(Task.assigned_to),
        selectinload(Task.created_by),
    )


def get_task_or_404(db: Session, task_id: UUID) -> Task:
    task = db.get(Task, task_id)
    if not task:
        raise NotFoundError("Task not found")
    return task


def create_task(
    db: Session,
    outbox: NotificationOutbox | None,
    session: UserSession,
    data: TaskCreate,
) -> Task:
    """Create a task and notify its assignee."""
    _check_staff(session, "create tasks")

    assignee = db.get(User, data.assigned_to_id)
    allowed_roles = {r.value for r in ROLES_ASSIGNABLE}
    if not assignee or assignee.role not in allowed_roles or not assignee.is_active:
        raise ValidationFailed(
            "Can only assign tasks to employees or admins",
            errors=[{"field": "assigned_to_id", "message": "Not an active employee"}],
        )
    if data.application_id and not db.get(Application, data.application_id):
        raise ValidationFailed(
            "Application not found",
            errors=[{"field": "application_id", "message": "Unknown application"}],
        )

    task = Task(
        title=data.title.strip(),
        description=data.description.strip(),
        priority=WorkPriority(data.priority).value,
        status=TaskStatus.OPEN.value,
        assigned_to_id=assignee.id,
        created_by_id=session.user_id,
        application_id=data.application_id,
        due_date=data.due_date,
    )
    db.add(task)
    db.commit()
    db.refresh(task)
    logger.info("task %s created by %s for %s", task.id, session.user_id, assignee.id)

    notification_facade.notify_task_assigned(db, outbox, task, session)
    return task


def list_tasks(
    db: Session,
    session: UserSession,
    status: TaskStatus | None = None,
    priority: WorkPriority | None = None,
    assigned_to_id: UUID | None = None,
    application_id: UUID | None = None,
) -> list[Task]:
    """
    Tasks visible to the caller, newest first.

    - admin: every task
    - employee: tasks assigned to or created by them
    """
    _check_staff(session, "view tasks")
    query = _query(db)
    if not permissions.is_admin(session):
        query = query.filter(
            or_(Task.assigned_to_id == session.user_id, Task.created_by_id == session.user_id)
        )
    if status:
        query = query.filter(Task.status == TaskStatus(status).value)
    if priority:
        query = query.filter(Task.priority == WorkPriority(priority).value)
    if assigned_to_id:
        query = query.filter(Task.assigned_to_id == assigned_to_id)
    if application_id:
        query = query.filter(Task.application_id == application_id)
    return query.order_by(Task.created_at.desc()).all()


def get_task(db: Session, task_id: UUID, session: UserSession) -> Task:
    _check_staff(session, "view tasks")
    task = get_task_or_404(db, task_id)
    if not permissions.is_admin(session) and not _is_party(session, task):
        raise PermissionDenied("Not authorized to view this task")
    return task


def update_task_status(
    db: Session,
    outbox: NotificationOutbox | None,
    task_id: UUID,
    session: UserSession,
    status: TaskStatus,
    note: str | None = None,
) -> Task:
    """
    Move a task to a new status (assignee, creator or admin).

    Completing a task stamps completed_at; leaving completed clears it.
    """
    task = get_task_or_404(db, task_id)
    if not permissions.is_admin(session) and not _is_party(session, task):
        raise PermissionDenied("Not authorized to update this task")

    target = TaskStatus(status)
    if target == TaskStatus.COMPLETED:
        if task.status != TaskStatus.COMPLETED.value:
            task.completed_at = utcnow()
    else:
        task.completed_at = None
    task.status = target.value
    db.commit()
    db.refresh(task)
    logger.info("task %s -> %s by %s", task.id, task.status, session.user_id)

    notification_facade.notify_task_status_changed(db, outbox, task, session, note)
    return task


def delete_task(db: Session, task_id: UUID, session: UserSession) -> None:
    """Only the creator or an admin may delete a task."""
    task = get_task_or_404(db, task_id)
    if not permissions.is_admin(session) and task.created_by_id != session.user_id:
        raise PermissionDenied("Not authorized to delete this task")
    db.delete(task)
    db.commit()
    logger.info("task %s deleted by %s", task_id, session.user_id)
