"""FastAPI dependencies for authentication, database access and record lookup."""

from typing import Generator
from uuid import UUID

import jwt
from fastapi import Depends, HTTPException, Request
from pydantic import ValidationError
from sqlalchemy.orm import Session

from casa.core.security import decode_session_token
from casa.db.enums import Role
from casa.db.models import Case, User
from casa.db.session import SessionLocal
from casa.schemas.auth import SessionIdentity, TokenPayload, UserSession
from casa.services.case_service import get_case


# Cookie and header names
COOKIE_NAME = "casa_session"
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


def _load_true_user(request: Request, db: Session) -> tuple[TokenPayload, User]:
    """Decode the cookie and check the authenticated (true) user."""
    token = request.cookies.get(COOKIE_NAME)
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    try:
        payload = TokenPayload.model_validate(decode_session_token(token))
    except (jwt.InvalidTokenError, ValidationError):
        raise HTTPException(status_code=401, detail="Invalid session")

    true_user = db.get(User, payload.true_sub or payload.sub)
    if not true_user:
        raise HTTPException(status_code=401, detail="User not found")
    if not true_user.active:
        raise HTTPException(status_code=401, detail="Account disabled")
    if true_user.token_version != payload.token_version:
        raise HTTPException(status_code=401, detail="Session revoked")
    return payload, true_user


def _build_session(request: Request, identity: SessionIdentity, user: User) -> UserSession:
    if not Role.has_value(user.role):
        raise HTTPException(
            status_code=403,
            detail=f"Unknown role '{user.role}'. Contact administrator.",
        )

    return UserSession(
        identity=identity,
        org_id=user.organization_id,
        role=Role(user.role),
        email=user.email,
        display_name=user.display_name,
        request_id=getattr(request.state, "request_id", None),
    )


def _impersonated_user(db: Session, identity: SessionIdentity, true_user: User) -> User | None:
    """The impersonated user, or None when it is gone, inactive or in another org."""
    user = db.get(User, identity.active_identity)
    if not user or not user.active or user.organization_id != true_user.organization_id:
        return None
    return user


def get_current_session(
    request: Request,
    db: Session = Depends(get_db),
) -> UserSession:
    """
    Get full session context from the session cookie.

    This is the PRIMARY auth dependency for every signed-in endpoint.

    Validates:
    - Session cookie exists and the JWT is valid and not expired
    - The true (authenticated) user exists, is active and its
      token_version matches (revocation support)
    - The active identity exists and is active

    Raises:
        HTTPException 401: Authentication failed
    """
    payload, true_user = _load_true_user(request, db)
    identity = SessionIdentity(active_identity=payload.sub, original_identity=payload.true_sub)

    if not identity.is_impersonating:
        return _build_session(request, identity, true_user)

    user = _impersonated_user(db, identity, true_user)
    if user is None:
        raise HTTPException(status_code=401, detail="Impersonated user unavailable")
    return _build_session(request, identity, user)


def get_exit_session(
    request: Request,
    db: Session = Depends(get_db),
) -> UserSession:
    """
    Session for leaving an impersonation.

    Only the true user is validated. When the impersonated user has become
    unavailable, the session keeps its dual identity but acts with the true
    user's role so the original identity can still be restored.
    """
    payload, true_user = _load_true_user(request, db)
    identity = SessionIdentity(active_identity=payload.sub, original_identity=payload.true_sub)

    user = true_user
    if identity.is_impersonating:
        user = _impersonated_user(db, identity, true_user) or true_user
    return _build_session(request, identity, user)


def require_csrf_header(request: Request) -> None:
    """
    Verify CSRF header on mutations.

    Apply to state-changing endpoints (POST, PATCH, DELETE).

    Raises:
        HTTPException 403: Missing or invalid CSRF header
    """
    if request.headers.get(CSRF_HEADER) != CSRF_HEADER_VALUE:
        raise HTTPException(
            status_code=403,
            detail=f"Missing CSRF header. Include '{CSRF_HEADER}: {CSRF_HEADER_VALUE}'",
        )


# =============================================================================
# Record lookup (404 for unknown ids; organization checks live in the policy)
# =============================================================================

def get_volunteer_or_404(volunteer_id: UUID, db: Session = Depends(get_db)) -> User:
    user = db.get(User, volunteer_id)
    if not user:
        raise HTTPException(status_code=404, detail="Volunteer not found")
    return user


def get_case_or_404(case_id: UUID, db: Session = Depends(get_db)) -> Case:
    case = get_case(db, case_id)
    if not case:
        raise HTTPException(status_code=404, detail="Case not found")
    return case
