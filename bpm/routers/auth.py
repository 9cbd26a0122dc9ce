"""Authentication endpoints - session info and logout."""

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from bpm.core.deps import COOKIE_NAME, get_current_session, get_db, require_csrf_header
from bpm.schemas.auth import MeResponse, UserSession
from bpm.schemas.common import ApiResponse, ok
from bpm.services import user_service

router = APIRouter()


@router.get("/me", response_model=ApiResponse[MeResponse])
def get_me(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Current user profile."""
    user = user_service.get_user_by_id(db, session.user_id)
    return ok(
        MeResponse(
            user_id=user.id,
            email=user.email,
            full_name=user.full_name,
            role=session.role,
            phone=user.phone,
            nationality=user.nationality,
        )
    )


@router.post("/logout", dependencies=[Depends(require_csrf_header)])
def logout(
    response: Response,
    session: UserSession = Depends(get_current_session),
):
    """
    Clear session cookie.

    Requires X-Requested-With header for CSRF protection.
    """
    response.delete_cookie(COOKIE_NAME, path="/")
    return ok(message="Logged out")
