"""Payment request/response schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from bpm.db.enums import PaymentPlan, VerificationAction


class PaymentSubmit(BaseModel):
    payment_plan: PaymentPlan
    receipt_url: str = Field(..., min_length=1, max_length=1000)


class InstallmentUpload(BaseModel):
    receipt_url: str = Field(..., min_length=1, max_length=1000)


class PaymentVerify(BaseModel):
    action: VerificationAction
    admin_notes: str | None = None


class InstallmentRead(BaseModel):
    sequence: int
    amount: float
    status: str
    receipt_url: str | None
    uploaded_at: datetime | None
    verified_by_admin: bool
    verified_at: datetime | None
    admin_notes: str | None

    model_config = {"from_attributes": True}


class PaymentRead(BaseModel):
    id: UUID
    application_id: UUID
    client_id: UUID
    total_amount: float
    currency: str
    payment_plan: str
    status: str
    receipt_url: str | None
    submitted_at: datetime | None
    method: str | None
    transaction_ref: str | None
    paid_by_id: UUID | None
    due_date: datetime | None
    verified_by_admin: bool
    verified_at: datetime | None
    verified_by_id: UUID | None
    admin_notes: str | None
    installments: list[InstallmentRead]
    created_at: datetime

    @classmethod
    def from_model(cls, payment) -> "PaymentRead":
        return cls(
            id=payment.id,
            application_id=payment.application_id,
            client_id=payment.client_id,
            total_amount=float(payment.total_amount),
            currency=payment.currency,
            payment_plan=payment.payment_plan,
            status=payment.status,
            receipt_url=payment.receipt_url,
            submitted_at=payment.submitted_at,
            method=payment.method,
            transaction_ref=payment.transaction_ref,
            paid_by_id=payment.paid_by_id,
            due_date=payment.due_date,
            verified_by_admin=payment.verified_by_admin,
            verified_at=payment.verified_at,
            verified_by_id=payment.verified_by_id,
            admin_notes=payment.admin_notes,
            installments=[
                InstallmentRead(
                    sequence=i.sequence,
                    amount=float(i.amount),
                    status=i.status,
                    receipt_url=i.receipt_url,
                    uploaded_at=i.uploaded_at,
                    verified_by_admin=i.verified_by_admin,
                    verified_at=i.verified_at,
                    admin_notes=i.admin_notes,
                )
                for i in payment.installments
            ],
            created_at=payment.created_at,
        )
