"""Notification-related enums."""

from enum import Enum


class NotificationType(str, Enum):
    """Severity of an in-app notification (drives the badge colour)."""

    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class NotificationPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class RealtimeEvent(str, Enum):
    """Event names pushed over the real-time channel."""

    # Every persisted notification is pushed on NOTIFICATION plus one specific event
    NOTIFICATION = "notification"
    NEW_APPLICATION = "new_application_notification"
    STATUS_UPDATE = "status_update_notification"
    ASSIGNMENT = "assignment_notification"
    PAYMENT_RECEIVED = "payment_notification"
    NEW_PAYMENT = "new_payment_notification"
    PAYMENT_VERIFICATION = "payment_verification"
    APPLICATION_DELETED = "application_deleted_notification"
    ADMIN_MESSAGE = "admin_notification"

    # Messaging (application rooms)
    NEW_MESSAGE = "new_message"
    MESSAGE_ERROR = "message_error"
    MESSAGES_READ = "messages_read"
    USER_TYPING = "user_typing"

    # Tasks and support tickets
    TASK_ASSIGNMENT = "task_assignment_notification"
    TASK_STATUS_UPDATE = "task_status_update_notification"
    NEW_TICKET = "new_ticket_notification"
    TICKET_ASSIGNMENT = "ticket_assignment_notification"
    TICKET_STATUS = "ticket_status_notification"


class MessageType(str, Enum):
    TEXT = "text"
    FILE = "file"
    IMAGE = "image"


class TicketStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class TaskStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class WorkPriority(str, Enum):
    """Priority of a task or support ticket."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class TicketCategory(str, Enum):
    GENERAL = "general"
    APPLICATION = "application"
    PAYMENT = "payment"
    DOCUMENT = "document"
    TECHNICAL = "technical"
    BILLING = "billing"
