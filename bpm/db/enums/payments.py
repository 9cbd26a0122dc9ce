"""Payment-related enums."""

from enum import Enum


class PaymentPlan(str, Enum):
    FULL = "full"
    INSTALLMENTS = "installments"


class PaymentStatus(str, Enum):
    """
    Status of a payment or of a single installment.

    pending -> submitted -> approved | rejected
    A rejected payment or installment may be submitted again.
    """

    PENDING = "pending"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


class PaymentMethod(str, Enum):
    CARD = "card"
    BANK_TRANSFER = "bank_transfer"
    CASH = "cash"


class VerificationAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"
