"""Authentication-related Pydantic schemas."""

from uuid import UUID

from pydantic import BaseModel

from bpm.db.enums import Role


class TokenPayload(BaseModel):
    """Decoded JWT payload structure."""
    sub: UUID  # user_id
    role: str
    token_version: int


class UserSession(BaseModel):
    """
    Session context for authenticated requests.

    Returned by the get_current_session dependency. Services take the
    actor from here, never from request bodies.
    """
    user_id: UUID
    role: Role  # Validated enum
    email: str
    full_name: str


class MeResponse(BaseModel):
    """Response schema for GET /auth/me endpoint."""
    user_id: UUID
    email: str
    full_name: str
    role: Role
    phone: str | None = None
    nationality: str | None = None
