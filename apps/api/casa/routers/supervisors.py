"""Supervisor accounts (listed by admins and supervisors, created by admins)."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from casa.core.deps import get_current_session, get_db, require_csrf_header
from casa.core.responses import render_result
from casa.schemas.auth import UserSession
from casa.schemas.user import SupervisorCreate, UserRead
from casa.services import supervisor_service

router = APIRouter()


@router.get("", response_model=list[UserRead])
def list_supervisors(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return supervisor_service.list_supervisors(db, session)


@router.post("", dependencies=[Depends(require_csrf_header)])
def create_supervisor(
    request: Request,
    body: SupervisorCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Create a supervisor and email them the account setup link."""
    result = supervisor_service.create_supervisor(db, session, body.model_dump())
    return render_result(request, db, result)
