"""Volunteer management endpoints (admins and supervisors)."""

from uuid import UUID

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from casa.core.deps import (
    get_current_session,
    get_db,
    get_volunteer_or_404,
    require_csrf_header,
)
from casa.core.responses import render_result
from casa.db.models import User
from casa.schemas.auth import UserSession
from casa.schemas.user import UserRead, VolunteerCreate, VolunteerUpdate
from casa.services import impersonation_service, volunteer_service
from casa.services.volunteer_service import RedirectContext

router = APIRouter()


@router.get("", response_model=list[UserRead])
def list_volunteers(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return volunteer_service.list_volunteers(db, session)


@router.post("", dependencies=[Depends(require_csrf_header)])
def create_volunteer(
    request: Request,
    body: VolunteerCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    result = volunteer_service.create_volunteer(db, session, body.model_dump())
    return render_result(request, db, result)


@router.get("/{volunteer_id}/edit", response_model=UserRead)
def edit_volunteer(
    session: UserSession = Depends(get_current_session),
    volunteer: User = Depends(get_volunteer_or_404),
):
    return volunteer_service.get_volunteer_for_edit(session, volunteer)


@router.patch("/{volunteer_id}", dependencies=[Depends(require_csrf_header)])
def update_volunteer(
    request: Request,
    body: VolunteerUpdate,
    session: UserSession = Depends(get_current_session),
    volunteer: User = Depends(get_volunteer_or_404),
    db: Session = Depends(get_db),
):
    """Update a volunteer. An `active` field in the form is ignored."""
    result = volunteer_service.update_volunteer(
        db, session, volunteer, body.model_dump(exclude_unset=True)
    )
    return render_result(request, db, result)


@router.patch("/{volunteer_id}/activate", dependencies=[Depends(require_csrf_header)])
def activate_volunteer(
    request: Request,
    redirect_to_path: str | None = None,
    casa_case_id: UUID | None = None,
    session: UserSession = Depends(get_current_session),
    volunteer: User = Depends(get_volunteer_or_404),
    db: Session = Depends(get_db),
):
    """
    Activate a volunteer and email them.

    `redirect_to_path=casa_case` with `casa_case_id` sends the user back to
    that case when the volunteer is assigned to it.
    """
    context = RedirectContext(redirect_to_path=redirect_to_path, casa_case_id=casa_case_id)
    result = volunteer_service.activate(db, session, volunteer, context)
    return render_result(request, db, result)


@router.patch("/{volunteer_id}/deactivate", dependencies=[Depends(require_csrf_header)])
def deactivate_volunteer(
    request: Request,
    session: UserSession = Depends(get_current_session),
    volunteer: User = Depends(get_volunteer_or_404),
    db: Session = Depends(get_db),
):
    result = volunteer_service.deactivate(db, session, volunteer)
    return render_result(request, db, result)


@router.patch("/{volunteer_id}/resend-invitation", dependencies=[Depends(require_csrf_header)])
def resend_invitation(
    request: Request,
    session: UserSession = Depends(get_current_session),
    volunteer: User = Depends(get_volunteer_or_404),
    db: Session = Depends(get_db),
):
    result = volunteer_service.resend_invitation(db, session, volunteer)
    return render_result(request, db, result)


@router.get("/{volunteer_id}/impersonate")
def impersonate_volunteer(
    request: Request,
    session: UserSession = Depends(get_current_session),
    volunteer: User = Depends(get_volunteer_or_404),
    db: Session = Depends(get_db),
):
    result = impersonation_service.impersonate(db, session, volunteer)
    return render_result(request, db, result)
