"""Structured logging helpers (ids only, no personal data)."""

from typing import Any


def build_log_context(
    *,
    user_id: str | None = None,
    role: str | None = None,
    request_id: str | None = None,
    route: str | None = None,
    method: str | None = None,
    application_id: str | None = None,
) -> dict[str, Any]:
    """Return a log context dict holding only the provided fields."""
    context: dict[str, Any] = {}
    if user_id:
        context["user_id"] = user_id
    if role:
        context["role"] = role
    if request_id:
        context["request_id"] = request_id
    if route:
        context["route"] = route
    if method:
        context["method"] = method
    if application_id:
        context["application_id"] = application_id
    return context
