"""
Application status transitions and progress.

This is the only place that decides whether a status change is legal
and how far along a status is.
"""

from bpm.db.enums import ApplicationStatus
from bpm.core.errors import InvalidTransition, ValidationFailed


STATUS_PROGRESS: dict[ApplicationStatus, int] = {
    ApplicationStatus.SUBMITTED: 10,
    ApplicationStatus.UNDER_REVIEW: 25,
    ApplicationStatus.APPROVED: 50,
    ApplicationStatus.IN_PROCESS: 75,
    ApplicationStatus.COMPLETED: 100,
    ApplicationStatus.REJECTED: 0,
}

ALLOWED_TRANSITIONS: dict[ApplicationStatus, frozenset[ApplicationStatus]] = {
    ApplicationStatus.SUBMITTED: frozenset(
        {
            ApplicationStatus.UNDER_REVIEW,
            ApplicationStatus.APPROVED,
            ApplicationStatus.REJECTED,
        }
    ),
    ApplicationStatus.UNDER_REVIEW: frozenset(
        {ApplicationStatus.APPROVED, ApplicationStatus.REJECTED}
    ),
    # Requires a verified payment, see can_transition
    ApplicationStatus.APPROVED: frozenset({ApplicationStatus.IN_PROCESS}),
    ApplicationStatus.IN_PROCESS: frozenset({ApplicationStatus.COMPLETED}),
    ApplicationStatus.COMPLETED: frozenset(),
    ApplicationStatus.REJECTED: frozenset(),
}

REVIEWABLE = frozenset({ApplicationStatus.SUBMITTED, ApplicationStatus.UNDER_REVIEW})


def parse_status(value: str | ApplicationStatus) -> ApplicationStatus:
    """Validate a status value against the closed enum.

    Raises:
        ValidationFailed: unknown status string (never coerced)
    """
    if isinstance(value, ApplicationStatus):
        return value
    if not isinstance(value, str) or not ApplicationStatus.has_value(value):
        allowed = ", ".join(s.value for s in ApplicationStatus)
        raise ValidationFailed(
            f"Invalid status '{value}'",
            errors=[{"field": "status", "message": f"Must be one of: {allowed}"}],
        )
    return ApplicationStatus(value)


def progress_for(status: str | ApplicationStatus) -> int:
    return STATUS_PROGRESS[parse_status(status)]


def can_transition(
    current: ApplicationStatus,
    target: ApplicationStatus,
    *,
    payment_approved: bool = False,
) -> bool:
    if current == target:
        return True
    if target not in ALLOWED_TRANSITIONS[current]:
        return False
    if current == ApplicationStatus.APPROVED and target == ApplicationStatus.IN_PROCESS:
        return payment_approved
    return True


def ensure_transition(
    current: str | ApplicationStatus,
    target: str | ApplicationStatus,
    *,
    payment_approved: bool = False,
) -> ApplicationStatus:
    """Validate `current -> target` and return the parsed target.

    Raises:
        ValidationFailed: target is not a known status
        InvalidTransition: the move is not in the transition table
    """
    current_status = parse_status(current)
    target_status = parse_status(target)
    if can_transition(current_status, target_status, payment_approved=payment_approved):
        return target_status
    if (
        current_status == ApplicationStatus.APPROVED
        and target_status == ApplicationStatus.IN_PROCESS
    ):
        raise InvalidTransition("Application cannot move to in_process before payment is verified")
    raise InvalidTransition(
        f"Cannot change status from {current_status.value} to {target_status.value}"
    )
