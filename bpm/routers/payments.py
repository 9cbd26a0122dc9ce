"""
Payments Router - receipt upload and admin verification.

Clients choose a plan and upload receipts; admins approve or reject the
whole payment (full plan) or each installment.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.orm import Session

from bpm.core.deps import (
    get_current_session,
    get_db,
    get_outbox,
    require_csrf_header,
    require_roles,
)
from bpm.db.enums import PaymentStatus, Role
from bpm.schemas.auth import UserSession
from bpm.schemas.common import ApiResponse, ok
from bpm.schemas.payment import InstallmentUpload, PaymentRead, PaymentSubmit, PaymentVerify
from bpm.services import payment_service
from bpm.services.notification_dispatch import NotificationOutbox

router = APIRouter()

# =============================================================================
# Client
# =============================================================================


@router.get("/client", response_model=ApiResponse[list[PaymentRead]])
def list_my_payments(
    session: UserSession = Depends(require_roles([Role.CLIENT])),
    db: Session = Depends(get_db),
):
    payments = payment_service.list_client_payments(db, session.user_id)
    return ok([PaymentRead.from_model(p) for p in payments])


@router.get("/admin/pending", response_model=ApiResponse[list[PaymentRead]])
def list_pending_payments(
    session: UserSession = Depends(require_roles([Role.ADMIN])),
    db: Session = Depends(get_db),
):
    """Payments with a receipt or installment waiting for verification."""
    payments = payment_service.list_pending_payments(db)
    return ok([PaymentRead.from_model(p) for p in payments])


@router.get("/admin/all", response_model=ApiResponse[list[PaymentRead]])
def list_all_payments(
    status: PaymentStatus | None = Query(None),
    session: UserSession = Depends(require_roles([Role.ADMIN])),
    db: Session = Depends(get_db),
):
    payments = payment_service.list_all_payments(db, status.value if status else None)
    return ok([PaymentRead.from_model(p) for p in payments])


@router.get("/{payment_id}", response_model=ApiResponse[PaymentRead])
def get_payment(
    payment_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    payment = payment_service.get_payment(db, payment_id, session)
    return ok(PaymentRead.from_model(payment))


@router.post(
    "/{payment_id}/submit",
    response_model=ApiResponse[PaymentRead],
    dependencies=[Depends(require_csrf_header)],
)
def submit_payment(
    payment_id: UUID,
    data: PaymentSubmit,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
    outbox: NotificationOutbox = Depends(get_outbox),
):
    """Choose a plan and upload the first receipt."""
    payment = payment_service.submit_payment(
        db, outbox, payment_id, session, data.payment_plan, data.receipt_url
    )
    return ok(PaymentRead.from_model(payment), "Payment submitted successfully")


@router.post(
    "/{payment_id}/installments/{sequence}/upload",
    response_model=ApiResponse[PaymentRead],
    dependencies=[Depends(require_csrf_header)],
)
def upload_installment(
    payment_id: UUID,
    data: InstallmentUpload,
    sequence: int = Path(..., ge=0, le=2),
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
    outbox: NotificationOutbox = Depends(get_outbox),
):
    payment = payment_service.upload_installment(
        db, outbox, payment_id, sequence, session, data.receipt_url
    )
    return ok(PaymentRead.from_model(payment), "Installment receipt uploaded successfully")


# =============================================================================
# Admin
# =============================================================================


@router.patch(
    "/{payment_id}/verify",
    response_model=ApiResponse[PaymentRead],
    dependencies=[Depends(require_csrf_header)],
)
def verify_payment(
    payment_id: UUID,
    data: PaymentVerify,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
    outbox: NotificationOutbox = Depends(get_outbox),
):
    payment = payment_service.verify_payment(
        db, outbox, payment_id, session, data.action, data.admin_notes
    )
    return ok(PaymentRead.from_model(payment), f"Payment {payment.status}")


@router.patch(
    "/{payment_id}/installments/{sequence}/verify",
    response_model=ApiResponse[PaymentRead],
    dependencies=[Depends(require_csrf_header)],
)
def verify_installment(
    payment_id: UUID,
    data: PaymentVerify,
    sequence: int = Path(..., ge=0, le=2),
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
    outbox: NotificationOutbox = Depends(get_outbox),
):
    payment = payment_service.verify_installment(
        db, outbox, payment_id, sequence, session, data.action, data.admin_notes
    )
    return ok(PaymentRead.from_model(payment), "Installment verified")
