"""SQLAlchemy ORM models."""

from __future__ import annotations

from typing import TYPE_CHECKING

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bpm.db.base import Base
from bpm.db.enums import PaymentPlan, PaymentStatus
from bpm.db.types import utcnow

if TYPE_CHECKING:
    from bpm.db.models import Application, User


class Payment(Base):
    """
    The single payment for an application.

    Created alongside the application in `pending`. The client uploads a
    receipt (whole amount or per installment) and an admin verifies it.
    """

    __tablename__ = "payments"
    __table_args__ = (
        UniqueConstraint("application_id", name="uq_payments_application"),
        Index("ix_payments_client", "client_id"),
        Index("ix_payments_status", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    application_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("applications.id", ondelete="CASCADE"), nullable=False
    )
    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )

    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    payment_plan: Mapped[str] = mapped_column(
        String(20), default=PaymentPlan.FULL.value, nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(20), default=PaymentStatus.PENDING.value, nullable=False
    )

    # Whole-payment receipt (full plan)
    receipt_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    submitted_at: Mapped[datetime | None] = mapped_column(nullable=True)

    # Direct settlement (make payment)
    method: Mapped[str | None] = mapped_column(String(20), nullable=True)
    transaction_ref: Mapped[str | None] = mapped_column(String(255), nullable=True)
    paid_by_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    due_date: Mapped[datetime | None] = mapped_column(nullable=True)

    # Admin verification
    verified_by_admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    verified_at: Mapped[datetime | None] = mapped_column(nullable=True)
    verified_by_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    admin_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    application: Mapped["Application"] = relationship(back_populates="payment")
    client: Mapped["User"] = relationship(foreign_keys=[client_id])
    installments: Mapped[list["PaymentInstallment"]] = relationship(
        back_populates="payment",
        cascade="all, delete-orphan",
        order_by="PaymentInstallment.sequence",
    )


class PaymentInstallment(Base):
    """One of the parts of an installment-plan payment, verified on its own."""

    __tablename__ = "payment_installments"
    __table_args__ = (
        UniqueConstraint("payment_id", "sequence", name="uq_installment_sequence"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    payment_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("payments.id", ondelete="CASCADE"), nullable=False
    )
    # Zero-based position within the plan
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=PaymentStatus.PENDING.value, nullable=False
    )
    receipt_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    uploaded_at: Mapped[datetime | None] = mapped_column(nullable=True)

    verified_by_admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    verified_at: Mapped[datetime | None] = mapped_column(nullable=True)
    verified_by_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    admin_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    payment: Mapped["Payment"] = relationship(back_populates="installments")
