"""Session service - issues session tokens for a (possibly impersonated) identity."""

from sqlalchemy.orm import Session

from casa.core.security import create_session_token
from casa.db.models import User
from casa.schemas.auth import SessionIdentity


class SessionIdentityError(Exception):
    """A session identity refers to a user that no longer exists."""


def identity_for(user: User) -> SessionIdentity:
    """Identity of a user acting as themselves."""
    return SessionIdentity(active_identity=user.id)


def create_token_for_identity(db: Session, identity: SessionIdentity) -> str:
    """
    Create a session token for an identity.

    The role and organization come from the active user; the token_version
    comes from the true user so revoking the true user's sessions also ends
    any impersonation started from them.
    """
    active_user = db.get(User, identity.active_identity)
    true_user = db.get(User, identity.true_user_id)
    if active_user is None or true_user is None:
        raise SessionIdentityError(f"Unknown user in session identity {identity}")

    return create_session_token(
        user_id=active_user.id,
        org_id=active_user.organization_id,
        role=active_user.role,
        token_version=true_user.token_version,
        true_user_id=true_user.id if identity.is_impersonating else None,
    )
