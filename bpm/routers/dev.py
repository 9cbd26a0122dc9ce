"""Development-only endpoints for testing."""

from uuid import UUID

from fastapi import APIRouter, Depends, Header, HTTPException, Request, Response
from sqlalchemy.orm import Session

from bpm.core.config import settings
from bpm.core.deps import COOKIE_NAME, get_db
from bpm.core.rate_limit import limiter
from bpm.core.security import create_session_token
from bpm.schemas.common import ok
from bpm.services import user_service

router = APIRouter()


def _verify_dev_secret(x_dev_secret: str = Header(...)):
    """
    Verify dev secret header.

    Provides an extra layer of protection for dev endpoints
    beyond just the ENV check.
    """
    if x_dev_secret != settings.DEV_SECRET:
        raise HTTPException(status_code=403, detail="Invalid dev secret")


@router.post("/login-as/{user_id}", dependencies=[Depends(_verify_dev_secret)])
@limiter.limit("10/minute")
def login_as(
    request: Request,
    user_id: UUID,
    response: Response,
    db: Session = Depends(get_db),
):
    """
    Directly set the session cookie for a user.

    Requires X-Dev-Secret header matching DEV_SECRET env var.
    Useful for testing role-based access without a login flow.
    """
    user = user_service.get_user_by_id(db, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    if not user.is_active:
        raise HTTPException(status_code=400, detail="User is disabled")

    token = create_session_token(user.id, user.role, user.token_version)

    response.set_cookie(
        key=COOKIE_NAME,
        value=token,
        max_age=settings.JWT_EXPIRES_HOURS * 3600,
        httponly=True,
        samesite="lax",
        secure=settings.cookie_secure,
        path="/",
    )

    return ok(
        {"user_id": str(user.id), "email": user.email, "role": user.role},
        "Logged in",
    )
