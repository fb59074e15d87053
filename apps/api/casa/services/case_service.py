"""Case service - case lookups and the case edit view."""

from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from casa.core.errors import AuthorizationDenied
from casa.core.permissions import Action, ResourceRef, can
from casa.core.policies import apply_scope
from casa.db.models import Case, CaseAssignment, CaseContact
from casa.schemas.auth import UserSession
from casa.schemas.case import AssignedVolunteer, CaseRead


def get_case(db: Session, case_id: UUID) -> Case | None:
    return (
        db.query(Case)
        .options(selectinload(Case.assignments).selectinload(CaseAssignment.volunteer))
        .filter(Case.id == case_id)
        .first()
    )


def active_volunteer_ids(case: Case) -> frozenset[UUID]:
    return frozenset(a.volunteer_id for a in case.assignments if a.active)


def case_resource(case: Case) -> ResourceRef:
    return ResourceRef.case(case.id, case.organization_id, active_volunteer_ids(case))


def list_cases(db: Session, session: UserSession) -> list[Case]:
    """Cases visible to the actor (whole org, or assigned cases for volunteers)."""
    query = apply_scope(session.actor, Action.VIEW_CASE, db.query(Case))
    return query.order_by(Case.case_number).all()


def get_case_view(db: Session, session: UserSession, case: Case) -> CaseRead:
    """
    Build the case edit view.

    Raises:
        AuthorizationDenied: actor may not view this case
    """
    if not can(session.actor, Action.VIEW_CASE, case_resource(case)):
        raise AuthorizationDenied()

    contact_count = (
        db.query(func.count(CaseContact.id)).filter(CaseContact.case_id == case.id).scalar()
    )
    return CaseRead(
        id=case.id,
        organization_id=case.organization_id,
        case_number=case.case_number,
        active=case.active,
        volunteers=[
            AssignedVolunteer.model_validate(a.volunteer) for a in case.assignments if a.active
        ],
        contact_count=contact_count or 0,
    )
