"""Pydantic schemas for request/response validation."""

from bpm.schemas.auth import MeResponse, TokenPayload, UserSession
from bpm.schemas.common import ApiResponse, ok
from bpm.schemas.payment import (
    InstallmentRead,
    InstallmentUpload,
    PaymentRead,
    PaymentSubmit,
    PaymentVerify,
)
from bpm.schemas.application import (
    ApplicationCreate,
    ApplicationRead,
    AssignRequest,
    DocumentRef,
    EmployeeApplicationUpdate,
    MakePaymentRequest,
    ReviewRequest,
    StatusUpdateRequest,
)
from bpm.schemas.notification import (
    NotificationCreate,
    NotificationListResponse,
    NotificationRead,
    UnreadCountResponse,
)
from bpm.schemas.message import (
    ConversationRead,
    MessageCreate,
    MessageRead,
    MessagesMarkRead,
)
from bpm.schemas.task import TaskCreate, TaskRead, TaskStatusUpdate
from bpm.schemas.ticket import TicketAssign, TicketCreate, TicketRead, TicketStatusUpdate
from bpm.schemas.user import ClientDeleteResult, ClientRead, EmployeeRead, UserRead

__all__ = [
    "ApiResponse",
    "ApplicationCreate",
    "ApplicationRead",
    "AssignRequest",
    "ClientDeleteResult",
    "ClientRead",
    "ConversationRead",
    "DocumentRef",
    "EmployeeApplicationUpdate",
    "EmployeeRead",
    "InstallmentRead",
    "InstallmentUpload",
    "MakePaymentRequest",
    "MeResponse",
    "MessageCreate",
    "MessageRead",
    "MessagesMarkRead",
    "NotificationCreate",
    "NotificationListResponse",
    "NotificationRead",
    "PaymentRead",
    "PaymentSubmit",
    "PaymentVerify",
    "ReviewRequest",
    "StatusUpdateRequest",
    "TaskCreate",
    "TaskRead",
    "TaskStatusUpdate",
    "TicketAssign",
    "TicketCreate",
    "TicketRead",
    "TicketStatusUpdate",
    "TokenPayload",
    "UnreadCountResponse",
    "UserRead",
    "UserSession",
    "ok",
]
