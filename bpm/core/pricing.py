"""Service price table used to size the payment created with each application."""

from decimal import Decimal

from bpm.db.enums import ServiceType


SERVICE_PRICES: dict[ServiceType, Decimal] = {
    ServiceType.COMMERCIAL: Decimal("5000"),
    ServiceType.ENGINEERING: Decimal("8000"),
    ServiceType.REAL_ESTATE: Decimal("10000"),
    ServiceType.INDUSTRIAL: Decimal("12000"),
    ServiceType.AGRICULTURAL: Decimal("6000"),
    ServiceType.SERVICE: Decimal("4000"),
    ServiceType.ADVERTISING: Decimal("3000"),
}

VIRTUAL_OFFICE_FEE = Decimal("2000")
EXTERNAL_COMPANY_FEE = Decimal("1000")

INSTALLMENT_COUNT = 3


def calculate_total(
    service_type: ServiceType,
    need_virtual_office: bool = False,
    external_companies_count: int = 0,
) -> Decimal:
    total = SERVICE_PRICES[ServiceType(service_type)]
    if need_virtual_office:
        total += VIRTUAL_OFFICE_FEE
    total += EXTERNAL_COMPANY_FEE * max(external_companies_count, 0)
    return total


def split_installments(total: Decimal, count: int = INSTALLMENT_COUNT) -> list[Decimal]:
    """Split total into `count` parts rounded to cents; the last part takes the remainder."""
    part = (total / count).quantize(Decimal("0.01"))
    parts = [part] * (count - 1)
    parts.append(total - part * (count - 1))
    return parts
