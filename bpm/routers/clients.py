"""Clients Router - client directory and the admin cascade delete."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from bpm.core.deps import get_db, require_csrf_header, require_roles
from bpm.db.enums import Role
from bpm.schemas.auth import UserSession
from bpm.schemas.common import ApiResponse, ok
from bpm.schemas.user import ClientDeleteResult, ClientRead
from bpm.services import user_service

router = APIRouter()

_staff = require_roles([Role.EMPLOYEE, Role.ADMIN])


def _client_read(user, count: int) -> ClientRead:
    return ClientRead.model_validate(user).model_copy(update={"application_count": count})


@router.get("", response_model=ApiResponse[list[ClientRead]], dependencies=[Depends(_staff)])
def list_clients(db: Session = Depends(get_db)):
    return ok([_client_read(user, count) for user, count in user_service.list_clients(db)])


@router.get(
    "/{client_id}",
    response_model=ApiResponse[ClientRead],
    dependencies=[Depends(_staff)],
)
def get_client(client_id: UUID, db: Session = Depends(get_db)):
    user, count = user_service.get_client(db, client_id)
    return ok(_client_read(user, count))


@router.delete(
    "/{client_id}",
    response_model=ApiResponse[ClientDeleteResult],
    dependencies=[Depends(require_csrf_header)],
)
def delete_client(
    client_id: UUID,
    session: UserSession = Depends(require_roles([Role.ADMIN])),
    db: Session = Depends(get_db),
):
    """
    Delete a client with all their applications and related records.

    Runs as a single transaction; returns the number of rows removed per table.
    """
    counts = user_service.delete_client(db, client_id, session)
    return ok(ClientDeleteResult(**counts), "Client and related data deleted successfully")
