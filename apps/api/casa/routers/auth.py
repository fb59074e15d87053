"""Authentication router: password login, logout, identity and impersonation exit."""

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from casa.core.deps import (
    COOKIE_NAME,
    get_current_session,
    get_db,
    get_exit_session,
    require_csrf_header,
)
from casa.core.rate_limit import auth_limit, limiter
from casa.core.responses import issue_session, render_result
from casa.db.enums import AuditEventType
from casa.db.models import Organization
from casa.schemas.auth import LoginRequest, MeResponse, UserSession
from casa.services import audit_service, auth_service, impersonation_service
from casa.services.session_service import identity_for

router = APIRouter()


@router.post("/login", dependencies=[Depends(require_csrf_header)])
@limiter.limit(auth_limit)
def login(
    request: Request,
    body: LoginRequest,
    db: Session = Depends(get_db),
):
    """
    Sign in with email and password and set the session cookie.

    Rate limited per client address.
    """
    user = auth_service.authenticate(db, body.email, body.password, request=request)
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid email or password")

    response = JSONResponse({"status": "ok", "user_id": str(user.id)})
    issue_session(db, response, identity_for(user))
    return response


@router.get("/me")
def get_me(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
) -> MeResponse:
    """
    Current identities.

    `user_id` is who the session acts as; `true_user_id` is who signed in.
    """
    org = db.get(Organization, session.org_id)

    return MeResponse(
        user_id=session.user_id,
        email=session.email,
        display_name=session.display_name,
        role=session.role,
        org_id=session.org_id,
        org_name=org.name,
        true_user_id=session.true_user_id,
        is_impersonating=session.is_impersonating,
    )


@router.post("/stop-impersonating", dependencies=[Depends(require_csrf_header)])
def stop_impersonating(
    request: Request,
    session: UserSession = Depends(get_exit_session),
    db: Session = Depends(get_db),
):
    result = impersonation_service.stop_impersonating(db, session)
    return render_result(request, db, result)


@router.post("/logout", dependencies=[Depends(require_csrf_header)])
def logout(
    request: Request,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """
    Clear session cookie and log logout event.

    Requires X-Requested-With header for CSRF protection.
    """
    # Audit log before clearing cookie
    audit_service.log_event(
        db,
        org_id=session.org_id,
        event_type=AuditEventType.AUTH_LOGOUT,
        actor_user_id=session.true_user_id,
        request=request,
        request_id=session.request_id,
    )
    db.commit()

    response = JSONResponse({"status": "logged_out"})
    response.delete_cookie(COOKIE_NAME, path="/")
    return response
