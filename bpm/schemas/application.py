"""Application request/response schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from bpm.db.enums import (
    DocumentType,
    FamilyRelation,
    PaymentMethod,
    PaymentPlan,
    ReviewAction,
    ServiceType,
)
from bpm.core.status_rules import progress_for
from bpm.schemas.payment import PaymentRead


# =============================================================================
# Requests
# =============================================================================


class ExternalCompany(BaseModel):
    company_name: str | None = None
    country: str | None = None
    cr_number: str | None = None  # Commercial Registration
    share_percentage: float | None = Field(None, ge=0, le=100)


class FamilyMember(BaseModel):
    name: str | None = None
    relation: FamilyRelation | None = None
    passport_no: str | None = None


class DocumentRef(BaseModel):
    """A file already uploaded to the media host."""
    type: DocumentType
    file_url: str = Field(..., min_length=1, max_length=1000)


class ApplicationCreate(BaseModel):
    service_type: ServiceType
    external_companies_count: int = Field(0, ge=0)
    external_companies_details: list[ExternalCompany] = Field(default_factory=list)
    project_estimated_value: float | None = Field(None, ge=0)
    family_members: list[FamilyMember] = Field(default_factory=list)
    need_virtual_office: bool = False
    company_arranges_external_companies: bool = False
    documents: list[DocumentRef] = Field(default_factory=list)


class ReviewRequest(BaseModel):
    action: ReviewAction
    reason: str | None = None


class AssignRequest(BaseModel):
    employee_ids: list[UUID] = Field(..., min_length=1)
    note: str | None = None
    task: str | None = Field(None, max_length=255)


class MakePaymentRequest(BaseModel):
    amount: float = Field(..., gt=0)
    method: PaymentMethod
    plan: PaymentPlan = PaymentPlan.FULL
    transaction_ref: str | None = Field(None, max_length=255)


class StatusUpdateRequest(BaseModel):
    # Plain string; the lifecycle rules validate it against the status whitelist
    status: str
    note: str | None = None


class EmployeeApplicationUpdate(BaseModel):
    """Fields an assigned employee may change. Anything else is ignored."""
    external_companies_count: int | None = Field(None, ge=0)
    external_companies_details: list[ExternalCompany] | None = None
    project_estimated_value: float | None = Field(None, ge=0)
    family_members: list[FamilyMember] | None = None
    need_virtual_office: bool | None = None
    company_arranges_external_companies: bool | None = None
    status: str | None = None
    note: str | None = None


# =============================================================================
# Responses
# =============================================================================


class UserSummary(BaseModel):
    id: UUID
    full_name: str
    email: str
    phone: str | None = None
    nationality: str | None = None


class AssignedEmployeeRead(BaseModel):
    employee_id: UUID
    full_name: str | None
    email: str | None
    task: str | None
    assigned_at: datetime


class DocumentRead(BaseModel):
    id: UUID
    type: str
    file_url: str
    uploaded_by_id: UUID | None
    created_at: datetime

    model_config = {"from_attributes": True}


class TimelineEntryRead(BaseModel):
    id: UUID
    status: str
    note: str | None
    progress: int
    updated_by_id: UUID | None
    updated_by_name: str | None = None
    created_at: datetime

    @classmethod
    def from_model(cls, entry) -> "TimelineEntryRead":
        return cls(
            id=entry.id,
            status=entry.status,
            note=entry.note,
            progress=entry.progress,
            updated_by_id=entry.updated_by_id,
            updated_by_name=entry.updated_by.full_name if entry.updated_by else None,
            created_at=entry.created_at,
        )


class ApplicationRead(BaseModel):
    id: UUID
    service_type: str
    status: str
    progress: int
    external_companies_count: int
    external_companies_details: list[dict]
    project_estimated_value: float | None
    family_members: list[dict]
    need_virtual_office: bool
    company_arranges_external_companies: bool
    approved_by_id: UUID | None
    approved_at: datetime | None
    client: UserSummary | None
    assigned_employees: list[AssignedEmployeeRead]
    documents: list[DocumentRead]
    timeline: list[TimelineEntryRead]
    payment: PaymentRead | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, application) -> "ApplicationRead":
        client = application.client
        return cls(
            id=application.id,
            service_type=application.service_type,
            status=application.status,
            progress=progress_for(application.status),
            external_companies_count=application.external_companies_count,
            external_companies_details=list(application.external_companies_details or []),
            project_estimated_value=(
                float(application.project_estimated_value)
                if application.project_estimated_value is not None
                else None
            ),
            family_members=list(application.family_members or []),
            need_virtual_office=application.need_virtual_office,
            company_arranges_external_companies=application.company_arranges_external_companies,
            approved_by_id=application.approved_by_id,
            approved_at=application.approved_at,
            client=(
                UserSummary(
                    id=client.id,
                    full_name=client.full_name,
                    email=client.email,
                    phone=client.phone,
                    nationality=client.nationality,
                )
                if client
                else None
            ),
            assigned_employees=[
                AssignedEmployeeRead(
                    employee_id=a.employee_id,
                    full_name=a.employee.full_name if a.employee else None,
                    email=a.employee.email if a.employee else None,
                    task=a.task,
                    assigned_at=a.assigned_at,
                )
                for a in application.assignments
            ],
            documents=[DocumentRead.model_validate(d) for d in application.documents],
            timeline=[TimelineEntryRead.from_model(e) for e in application.timeline_entries],
            payment=PaymentRead.from_model(application.payment) if application.payment else None,
            created_at=application.created_at,
            updated_at=application.updated_at,
        )
