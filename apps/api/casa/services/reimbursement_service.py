"""Reimbursement service - driving reimbursement queue for CASA admins."""

from uuid import UUID

from sqlalchemy.orm import Session, joinedload

from casa.core.permissions import Action, ResourceRef, can
from casa.core.policies import apply_scope
from casa.db.enums import AuditEventType
from casa.db.models import Case, CaseContact
from casa.schemas.auth import UserSession
from casa.schemas.case import ReimbursementRead
from casa.services import audit_service
from casa.services.results import ActionResult

REIMBURSEMENTS_PATH = "/reimbursements"
STATUS_UPDATED_NOTICE = "Reimbursement status was updated."


def get_contact(db: Session, contact_id: UUID) -> CaseContact | None:
    return (
        db.query(CaseContact)
        .options(joinedload(CaseContact.case))
        .filter(CaseContact.id == contact_id)
        .first()
    )


def list_reimbursements(
    db: Session,
    session: UserSession,
    include_complete: bool = False,
) -> list[CaseContact]:
    """
    Case contacts that requested driving reimbursement, scoped to the
    actor's organization. Roles without access get an empty list.
    """
    query = apply_scope(session.actor, Action.VIEW_REIMBURSEMENTS, db.query(CaseContact))
    query = query.filter(CaseContact.want_driving_reimbursement.is_(True))
    if not include_complete:
        query = query.filter(CaseContact.reimbursement_complete.is_(False))
    return (
        query.options(joinedload(CaseContact.case), joinedload(CaseContact.creator))
        .order_by(CaseContact.occurred_at.desc())
        .all()
    )


def to_read(contact: CaseContact) -> ReimbursementRead:
    return ReimbursementRead(
        id=contact.id,
        case_id=contact.case_id,
        case_number=contact.case.case_number,
        creator_id=contact.creator_id,
        creator_name=contact.creator.display_name if contact.creator else None,
        occurred_at=contact.occurred_at,
        miles_driven=contact.miles_driven,
        reimbursement_complete=contact.reimbursement_complete,
    )


def change_reimbursement_status(
    db: Session,
    session: UserSession,
    contact: CaseContact,
    complete: bool,
) -> ActionResult:
    """Mark a contact's reimbursement complete or incomplete."""
    case: Case = contact.case
    resource = ResourceRef.case_contact(contact.id, case.organization_id)
    if not can(session.actor, Action.CHANGE_REIMBURSEMENT_STATUS, resource):
        return ActionResult.denied()

    previous = contact.reimbursement_complete
    contact.reimbursement_complete = complete
    audit_service.log_session_event(
        db,
        session,
        AuditEventType.REIMBURSEMENT_STATUS_CHANGED,
        target_type="case_contact",
        target_id=contact.id,
        details={"from": previous, "to": complete},
    )
    db.commit()

    return ActionResult.ok(REIMBURSEMENTS_PATH, STATUS_UPDATED_NOTICE)
