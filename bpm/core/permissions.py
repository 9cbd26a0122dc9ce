"""
Application access rules.

One rule covers every application endpoint: the caller must own the
application, be assigned to it, or be an admin. Role-specific gates
(staff-only, admin-only, owner-only) are layered on top of it.
"""

from bpm.core.errors import PermissionDenied
from bpm.db.enums import ROLES_STAFF, Role
from bpm.db.models import Application
from bpm.schemas.auth import UserSession


def is_admin(session: UserSession) -> bool:
    return session.role == Role.ADMIN


def is_staff(session: UserSession) -> bool:
    return session.role in ROLES_STAFF


def is_owner(session: UserSession, application: Application) -> bool:
    return application.client_id == session.user_id


def is_assigned(session: UserSession, application: Application) -> bool:
    return session.user_id in application.assigned_employee_ids


def can_access_application(session: UserSession, application: Application) -> bool:
    """Owner, assigned employee, or admin."""
    return (
        is_admin(session)
        or is_owner(session, application)
        or is_assigned(session, application)
    )


def check_application_access(session: UserSession, application: Application) -> None:
    """Raise PermissionDenied unless the caller may act on this application."""
    if not can_access_application(session, application):
        raise PermissionDenied("You do not have access to this application")


def check_staff_access(
    session: UserSession, application: Application, action: str = "perform this action"
) -> None:
    """Assigned employee or admin."""
    check_application_access(session, application)
    if not is_staff(session):
        raise PermissionDenied(f"Only staff can {action}")


def check_owner(session: UserSession, application: Application, action: str) -> None:
    check_application_access(session, application)
    if not is_owner(session, application):
        raise PermissionDenied(f"Only the application owner can {action}")


def check_admin(session: UserSession, action: str) -> None:
    if not is_admin(session):
        raise PermissionDenied(f"Only admins can {action}")
