"""
Service-layer exceptions and the HTTP error envelope.

Services raise ServiceError subclasses; the handlers registered here turn
them (and framework errors) into `{"success": false, "message": ...}`.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from bpm.core.config import settings
from bpm.core.request_context import get_request_id
from bpm.core.structured_logging import build_log_context

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    """Base class for expected, user-facing service failures."""

    status_code = 400

    def __init__(self, message: str, errors: list[dict] | None = None):
        super().__init__(message)
        self.message = message
        self.errors = errors


class ValidationFailed(ServiceError):
    """Missing or invalid input."""

    status_code = 400


class InvalidTransition(ServiceError):
    """Requested status change is not allowed from the current status."""

    status_code = 400


class ConflictError(ServiceError):
    """Operation clashes with existing state (duplicate payment, re-submission)."""

    status_code = 400


class PermissionDenied(ServiceError):
    status_code = 403


class NotFoundError(ServiceError):
    status_code = 404


def error_body(message: str, errors: list[dict] | None = None) -> dict:
    body: dict = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    return body


def _field_errors(exc: RequestValidationError) -> list[dict]:
    fields = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()))
        fields.append({"field": location, "message": err.get("msg", "Invalid value")})
    return fields


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.message, exc.errors),
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(message),
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content=error_body("Validation failed", _field_errors(exc)),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    session = getattr(request.state, "user_session", None)
    context = build_log_context(
        user_id=str(session.user_id) if session else None,
        role=session.role.value if session else None,
        request_id=get_request_id(),
        route=request.url.path,
        method=request.method,
    )
    logger.exception("Unhandled error", extra={"context": context})

    body = error_body("Internal server error")
    if not settings.is_production:
        body["error"] = str(exc)
    return JSONResponse(status_code=500, content=body)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
