"""SQLAlchemy ORM models."""

from bpm.db.models.auth import User
from bpm.db.models.applications import (
    Application,
    ApplicationAssignment,
    ApplicationDocument,
    ApplicationTimeline,
)
from bpm.db.models.payments import Payment, PaymentInstallment
from bpm.db.models.notifications import Notification
from bpm.db.models.messaging import Message, Task, Ticket, TicketReply

__all__ = [
    "Application",
    "ApplicationAssignment",
    "ApplicationDocument",
    "ApplicationTimeline",
    "Message",
    "Notification",
    "Payment",
    "PaymentInstallment",
    "Task",
    "Ticket",
    "TicketReply",
    "User",
]
