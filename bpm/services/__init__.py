"""Service layer modules."""

from bpm.services.user_service import (
    create_user,
    get_user_by_email,
    get_user_by_id,
    revoke_all_sessions,
)

# Import service modules (not individual functions) for cleaner access
from bpm.services import notification_dispatch
from bpm.services import notification_service
from bpm.services import notification_facade
from bpm.services import timeline_service
from bpm.services import application_service
from bpm.services import payment_service
from bpm.services import message_service
from bpm.services import task_service
from bpm.services import ticket_service

__all__ = [
    # User service
    "create_user",
    "get_user_by_email",
    "get_user_by_id",
    "revoke_all_sessions",
    # Service modules
    "application_service",
    "message_service",
    "notification_dispatch",
    "notification_facade",
    "notification_service",
    "payment_service",
    "task_service",
    "ticket_service",
    "timeline_service",
]
