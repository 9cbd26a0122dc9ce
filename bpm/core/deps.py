"""FastAPI dependencies for authentication, authorization, and database access."""

from typing import Generator
from uuid import UUID

from fastapi import BackgroundTasks, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from bpm.core.security import decode_session_token
from bpm.core.websocket import ConnectionManager, manager
from bpm.db.session import SessionLocal


# Cookie and header names
COOKIE_NAME = "bpm_session"
CSRF_HEADER = "X-Requested-With"
CSRF_HEADER_VALUE = "XMLHttpRequest"


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and ensures it's closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _bearer_token(request: Request) -> str | None:
    header = request.headers.get("Authorization", "")
    scheme, _, value = header.partition(" ")
    if scheme.lower() == "bearer" and value:
        return value.strip()
    return None


def _session_token(request: Request) -> str | None:
    return request.cookies.get(COOKIE_NAME) or _bearer_token(request)


def _parse_uuid(value) -> UUID:
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid session")


def resolve_user(db: Session, token: str | None):
    """
    Load the user behind a session token.

    Validates:
    - Token exists
    - JWT is valid and not expired
    - User exists and is active
    - Token version matches (for revocation support)

    Raises:
        HTTPException 401: Authentication failed
    """
    # Import here to avoid circular imports
    from bpm.db.models import User

    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    try:
        payload = decode_session_token(token)
    except Exception:
        raise HTTPException(status_code=401, detail="Invalid session")

    user = db.get(User, _parse_uuid(payload.get("sub")))
    if not user:
        raise HTTPException(status_code=401, detail="User not found")

    if not user.is_active:
        raise HTTPException(status_code=401, detail="Account disabled")

    if user.token_version != payload.get("token_version"):
        raise HTTPException(status_code=401, detail="Session revoked")

    return user


def get_current_user(request: Request, db: Session = Depends(get_db)):
    """Get authenticated user from the session cookie or a Bearer header."""
    return resolve_user(db, _session_token(request))


def get_current_session(request: Request, db: Session = Depends(get_db)):
    """
    Get session context: user_id, role, email, name.

    This is the PRIMARY auth dependency for most endpoints.

    Raises:
        HTTPException 401: Not authenticated
        HTTPException 403: Unknown role
    """
    from bpm.db.enums import Role
    from bpm.schemas.auth import UserSession

    user = get_current_user(request, db)

    # Validate role is a known enum value - return 403 not 500
    if not Role.has_value(user.role):
        raise HTTPException(
            status_code=403,
            detail=f"Unknown role '{user.role}'. Contact administrator.",
        )

    session = UserSession(
        user_id=user.id,
        role=Role(user.role),
        email=user.email,
        full_name=user.full_name,
    )
    request.state.user_session = session
    return session


def require_roles(allowed_roles: list):
    """
    Dependency factory for role-based authorization.

    Usage:
        @router.post("/x", dependencies=[Depends(require_roles([Role.ADMIN]))])
    """
    def dependency(request: Request, db: Session = Depends(get_db)):
        session = get_current_session(request, db)
        if session.role not in allowed_roles:
            raise HTTPException(
                status_code=403,
                detail=f"Role '{session.role.value}' not authorized for this action",
            )
        return session
    return dependency


def require_csrf_header(request: Request) -> None:
    """
    Verify CSRF header on cookie-authenticated mutations.

    Bearer-token callers are not exposed to CSRF and are exempt.

    Raises:
        HTTPException 403: Missing or invalid CSRF header
    """
    if _bearer_token(request) and not request.cookies.get(COOKIE_NAME):
        return
    if request.headers.get(CSRF_HEADER) != CSRF_HEADER_VALUE:
        raise HTTPException(
            status_code=403,
            detail=f"Missing CSRF header. Include '{CSRF_HEADER}: {CSRF_HEADER_VALUE}'",
        )


def get_realtime_channel() -> ConnectionManager:
    """The real-time channel notifications are pushed to."""
    return manager


def get_outbox(
    background_tasks: BackgroundTasks,
    channel: ConnectionManager = Depends(get_realtime_channel),
):
    """
    Per-request notification outbox.

    Pushes queued during the request are delivered by a background task
    after the response is sent.
    """
    from bpm.services.notification_dispatch import NotificationOutbox

    outbox = NotificationOutbox()
    background_tasks.add_task(outbox.deliver, channel)
    return outbox
