"""Driving reimbursement queue (CASA admins)."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from casa.core.deps import get_current_session, get_db, require_csrf_header
from casa.core.errors import AuthorizationDenied
from casa.core.permissions import Action, ResourceRef, can
from casa.core.responses import render_result
from casa.schemas.auth import UserSession
from casa.schemas.case import ReimbursementRead, ReimbursementStatusUpdate
from casa.services import reimbursement_service

router = APIRouter()


@router.get("", response_model=list[ReimbursementRead])
def list_reimbursements(
    include_complete: bool = False,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    if not can(session.actor, Action.VIEW_REIMBURSEMENTS, ResourceRef.organization(session.org_id)):
        raise AuthorizationDenied()
    contacts = reimbursement_service.list_reimbursements(
        db, session, include_complete=include_complete
    )
    return [reimbursement_service.to_read(c) for c in contacts]


@router.patch("/{contact_id}", dependencies=[Depends(require_csrf_header)])
def change_reimbursement_status(
    request: Request,
    contact_id: UUID,
    body: ReimbursementStatusUpdate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    contact = reimbursement_service.get_contact(db, contact_id)
    if not contact:
        raise HTTPException(status_code=404, detail="Case contact not found")
    result = reimbursement_service.change_reimbursement_status(
        db, session, contact, body.reimbursement_complete
    )
    return render_result(request, db, result)
