"""Application-related enums."""

from enum import Enum


class ApplicationStatus(str, Enum):
    """Lifecycle status of an application. See bpm.core.status_rules for transitions."""

    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    IN_PROCESS = "in_process"
    COMPLETED = "completed"
    REJECTED = "rejected"

    @classmethod
    def has_value(cls, value: str) -> bool:
        return value in cls._value2member_map_


class ServiceType(str, Enum):
    """Services a client can apply for."""

    COMMERCIAL = "commercial"
    ENGINEERING = "engineering"
    REAL_ESTATE = "real_estate"
    INDUSTRIAL = "industrial"
    AGRICULTURAL = "agricultural"
    SERVICE = "service"
    ADVERTISING = "advertising"


class FamilyRelation(str, Enum):
    SPOUSE = "spouse"
    CHILD = "child"
    PARENT = "parent"
    OTHER = "other"


class DocumentType(str, Enum):
    """Supporting document kinds attached to an application."""

    PASSPORT = "passport"
    ID_CARD = "idCard"
    SAUDI_PARTNER_IQAMA = "saudiPartnerIqama"
    COMMERCIAL_REGISTRATION = "commercial_registration"
    FINANCIAL_STATEMENT = "financial_statement"
    ARTICLES_OF_ASSOCIATION = "articles_of_association"
    OTHER = "other"


class ReviewAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"
