"""Enum definitions for application constants."""

from bpm.db.enums.applications import (
    ApplicationStatus,
    DocumentType,
    FamilyRelation,
    ReviewAction,
    ServiceType,
)
from bpm.db.enums.auth import Role
from bpm.db.enums.notifications import (
    MessageType,
    NotificationPriority,
    NotificationType,
    RealtimeEvent,
    TaskStatus,
    TicketCategory,
    TicketStatus,
    WorkPriority,
)
from bpm.db.enums.payments import (
    PaymentMethod,
    PaymentPlan,
    PaymentStatus,
    VerificationAction,
)

# Role sets used by permission checks
ROLES_STAFF = frozenset({Role.EMPLOYEE, Role.ADMIN})
ROLES_ASSIGNABLE = frozenset({Role.EMPLOYEE, Role.ADMIN})

__all__ = [
    "ApplicationStatus",
    "ROLES_ASSIGNABLE",
    "DocumentType",
    "FamilyRelation",
    "MessageType",
    "NotificationPriority",
    "NotificationType",
    "PaymentMethod",
    "PaymentPlan",
    "PaymentStatus",
    "RealtimeEvent",
    "ReviewAction",
    "Role",
    "ServiceType",
    "ROLES_STAFF",
    "TaskStatus",
    "TicketCategory",
    "TicketStatus",
    "VerificationAction",
    "WorkPriority",
]
