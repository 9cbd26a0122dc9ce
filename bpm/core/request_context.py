"""Per-request id, available to log calls anywhere in the request."""

from contextvars import ContextVar, Token


_REQUEST_ID: ContextVar[str | None] = ContextVar("request_id", default=None)


def start_request_context(request_id: str) -> Token:
    """Bind the request id to the current context and return the reset token."""
    return _REQUEST_ID.set(request_id)


def reset_request_context(token: Token) -> None:
    _REQUEST_ID.reset(token)


def get_request_id() -> str | None:
    return _REQUEST_ID.get()
