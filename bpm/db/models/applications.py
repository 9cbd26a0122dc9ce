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
from bpm.db.enums import ApplicationStatus
from bpm.db.types import JsonType, utcnow

if TYPE_CHECKING:
    from bpm.db.models import Message, Payment, Task, User


class Application(Base):
    """
    A client's service request moving through the status lifecycle.

    Owned by the client. Documents, timeline entries, the payment,
    assignments, messages and tasks are owned by the application and
    go away with it.
    """

    __tablename__ = "applications"
    __table_args__ = (
        Index("ix_applications_client", "client_id", "created_at"),
        Index("ix_applications_status", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    service_type: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(
        String(30), default=ApplicationStatus.SUBMITTED.value, nullable=False
    )

    # Service details
    external_companies_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    external_companies_details: Mapped[list] = mapped_column(JsonType, default=list, nullable=False)
    project_estimated_value: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    family_members: Mapped[list] = mapped_column(JsonType, default=list, nullable=False)
    need_virtual_office: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    company_arranges_external_companies: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )

    # Approval stamp
    approved_by_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)

    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    client: Mapped["User"] = relationship(foreign_keys=[client_id])
    approved_by: Mapped["User"] = relationship(foreign_keys=[approved_by_id])
    assignments: Mapped[list["ApplicationAssignment"]] = relationship(
        back_populates="application",
        cascade="all, delete-orphan",
        order_by="ApplicationAssignment.assigned_at",
    )
    documents: Mapped[list["ApplicationDocument"]] = relationship(
        back_populates="application",
        cascade="all, delete-orphan",
        order_by="ApplicationDocument.created_at",
    )
    timeline_entries: Mapped[list["ApplicationTimeline"]] = relationship(
        back_populates="application",
        cascade="all, delete-orphan",
        order_by=lambda: ApplicationTimeline.created_at.desc(),
    )
    payment: Mapped["Payment"] = relationship(
        back_populates="application", cascade="all, delete-orphan", uselist=False
    )
    messages: Mapped[list["Message"]] = relationship(cascade="all, delete-orphan")
    tasks: Mapped[list["Task"]] = relationship(cascade="all, delete-orphan")

    @property
    def assigned_employee_ids(self) -> list[uuid.UUID]:
        return [a.employee_id for a in self.assignments]


class ApplicationAssignment(Base):
    """An employee (or admin) attached to an application, with a task label."""

    __tablename__ = "application_assignments"
    __table_args__ = (
        UniqueConstraint("application_id", "employee_id", name="uq_assignment_employee"),
        Index("ix_assignments_employee", "employee_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    application_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("applications.id", ondelete="CASCADE"), nullable=False
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    task: Mapped[str | None] = mapped_column(String(255), nullable=True)
    assigned_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    application: Mapped["Application"] = relationship(back_populates="assignments")
    employee: Mapped["User"] = relationship()


class ApplicationDocument(Base):
    """Reference to a supporting document held by the external media host."""

    __tablename__ = "application_documents"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    application_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("applications.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    file_url: Mapped[str] = mapped_column(String(1000), nullable=False)
    uploaded_by_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    application: Mapped["Application"] = relationship(back_populates="documents")


class ApplicationTimeline(Base):
    """
    Append-only audit entry for one lifecycle event.

    Rows are never updated. They are removed only together with
    their application.
    """

    __tablename__ = "application_timeline"
    __table_args__ = (Index("ix_timeline_application", "application_id", "created_at"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    application_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("applications.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[str] = mapped_column(String(30), nullable=False)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    progress: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    updated_by_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    application: Mapped["Application"] = relationship(back_populates="timeline_entries")
    updated_by: Mapped["User"] = relationship()
