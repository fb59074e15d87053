"""Case endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from casa.core.deps import get_case_or_404, get_current_session, get_db
from casa.db.models import Case
from casa.schemas.auth import UserSession
from casa.schemas.case import CaseRead
from casa.services import case_service

router = APIRouter()


@router.get("", response_model=list[CaseRead])
def list_cases(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Cases visible to the caller; volunteers only see cases they are assigned to."""
    return [
        CaseRead(
            id=case.id,
            organization_id=case.organization_id,
            case_number=case.case_number,
            active=case.active,
        )
        for case in case_service.list_cases(db, session)
    ]


@router.get("/{case_id}/edit", response_model=CaseRead)
def edit_case(
    session: UserSession = Depends(get_current_session),
    case: Case = Depends(get_case_or_404),
    db: Session = Depends(get_db),
):
    return case_service.get_case_view(db, session, case)
