"""Own-account endpoints: profile view, profile update, password change."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from casa.core.deps import get_current_session, get_db, require_csrf_header
from casa.core.responses import render_result
from casa.schemas.auth import UserSession
from casa.schemas.user import PasswordUpdate, ProfileUpdate, UserRead
from casa.services import user_service

router = APIRouter()


@router.get("/edit", response_model=UserRead)
def edit_profile(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return user_service.get_own_profile(db, session)


@router.patch("", dependencies=[Depends(require_csrf_header)])
def update_profile(
    request: Request,
    body: ProfileUpdate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Update own profile. An `active` field in the form is ignored."""
    result = user_service.update_profile(db, session, body.model_dump(exclude_unset=True))
    return render_result(request, db, result)


@router.patch("/password", dependencies=[Depends(require_csrf_header)])
def update_password(
    request: Request,
    body: PasswordUpdate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    result = user_service.update_password(
        db,
        session,
        current_password=body.current_password,
        password=body.password,
        password_confirmation=body.password_confirmation,
    )
    return render_result(request, db, result)
