"""Authentication-related Pydantic schemas."""

from uuid import UUID

from pydantic import BaseModel

from casa.core.permissions import Actor
from casa.db.enums import Role


class TokenPayload(BaseModel):
    """Decoded JWT payload structure."""
    sub: UUID  # active identity
    true_sub: UUID | None = None  # original identity while impersonating
    org_id: UUID
    role: str
    token_version: int


class SessionIdentity(BaseModel):
    """
    Dual identity of a session.

    `active_identity` is who the session acts as; `original_identity` is the
    user who actually authenticated, set only while impersonating.
    """
    active_identity: UUID
    original_identity: UUID | None = None

    @property
    def true_user_id(self) -> UUID:
        return self.original_identity or self.active_identity

    @property
    def is_impersonating(self) -> bool:
        return (
            self.original_identity is not None
            and self.original_identity != self.active_identity
        )


class UserSession(BaseModel):
    """
    Full session context for authenticated requests.

    Returned by the get_current_session dependency and passed
    explicitly into every service operation.
    """
    identity: SessionIdentity
    org_id: UUID
    role: Role  # role of the active identity
    email: str
    display_name: str
    request_id: str | None = None

    @property
    def user_id(self) -> UUID:
        return self.identity.active_identity

    @property
    def true_user_id(self) -> UUID:
        return self.identity.true_user_id

    @property
    def is_impersonating(self) -> bool:
        return self.identity.is_impersonating

    @property
    def actor(self) -> Actor:
        return Actor(user_id=self.user_id, org_id=self.org_id, role=self.role)


class LoginRequest(BaseModel):
    email: str
    password: str


class MeResponse(BaseModel):
    """Response schema for GET /auth/me."""
    user_id: UUID
    email: str
    display_name: str
    role: Role
    org_id: UUID
    org_name: str
    true_user_id: UUID
    is_impersonating: bool
