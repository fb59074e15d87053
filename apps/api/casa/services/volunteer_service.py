"""Volunteer service - volunteer lifecycle managed by admins and supervisors.

Every operation checks the permission policy first and returns an
ActionResult; a denial is a redirect with a notice, never an error.
State changes are committed before any email is queued, so a failed
notification never rolls back the transition.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from casa.core.errors import AuthorizationDenied, ValidationFailure
from casa.core.permissions import Action, ResourceRef, can
from casa.core.policies import apply_scope
from casa.db.enums import AuditEventType, EmailTemplate, Role
from casa.db.models import CaseAssignment, User
from casa.schemas.auth import UserSession
from casa.services import audit_service, email_service
from casa.services.results import ActionResult, case_edit_path, volunteer_edit_path
from casa.services.user_service import (
    apply_user_attributes,
    strip_protected,
    user_resource,
    validate_supervisor,
    validate_user_attributes,
)

logger = logging.getLogger(__name__)

ACTIVATED_NOTICE = "Volunteer was activated. They have been sent an email."
DEACTIVATED_NOTICE = "Volunteer was deactivated."
UPDATED_NOTICE = "Volunteer was successfully updated."
CREATED_NOTICE = "New volunteer created successfully."
INVITATION_SENT_NOTICE = "Invitation sent"

VOLUNTEER_FIELDS = ("display_name", "email", "phone_number", "supervisor_id")

CASE_REDIRECT = "casa_case"


@dataclass(frozen=True)
class RedirectContext:
    """Where the activate action was triggered from (e.g. a case edit page)."""

    redirect_to_path: str | None = None
    casa_case_id: UUID | None = None


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _audit(
    db: Session,
    session: UserSession,
    event_type: AuditEventType,
    volunteer: User,
    details: dict[str, Any] | None = None,
) -> None:
    audit_service.log_session_event(
        db,
        session,
        event_type,
        target_type="user",
        target_id=volunteer.id,
        details=details,
    )


# =============================================================================
# Queries
# =============================================================================

def list_volunteers(db: Session, session: UserSession) -> list[User]:
    """Volunteers of the actor's organization; empty for roles without access."""
    query = apply_scope(session.actor, Action.LIST_VOLUNTEERS, db.query(User))
    return query.order_by(User.display_name).all()


def get_volunteer_for_edit(session: UserSession, volunteer: User) -> User:
    if not can(session.actor, Action.EDIT_VOLUNTEER, user_resource(volunteer)):
        raise AuthorizationDenied()
    return volunteer


def has_active_assignment(db: Session, volunteer: User, case_id: UUID) -> bool:
    return (
        db.query(CaseAssignment.id)
        .filter(
            CaseAssignment.volunteer_id == volunteer.id,
            CaseAssignment.case_id == case_id,
            CaseAssignment.active.is_(True),
        )
        .first()
        is not None
    )


def activation_redirect(db: Session, volunteer: User, context: RedirectContext | None) -> str:
    """
    Case edit view when activation started from a case the volunteer is
    actively assigned to, otherwise the volunteer edit view.
    """
    if (
        context is not None
        and context.redirect_to_path == CASE_REDIRECT
        and context.casa_case_id is not None
        and has_active_assignment(db, volunteer, context.casa_case_id)
    ):
        return case_edit_path(context.casa_case_id)
    return volunteer_edit_path(volunteer.id)


# =============================================================================
# Lifecycle
# =============================================================================

def activate(
    db: Session,
    session: UserSession,
    volunteer: User,
    redirect_context: RedirectContext | None = None,
) -> ActionResult:
    """
    Activate a volunteer and email them.

    Already-active volunteers are still notified.
    """
    if not can(session.actor, Action.ACTIVATE_VOLUNTEER, user_resource(volunteer)):
        return ActionResult.denied()

    was_active = volunteer.active
    volunteer.active = True
    _audit(
        db,
        session,
        AuditEventType.VOLUNTEER_ACTIVATED,
        volunteer,
        details={"was_active": was_active},
    )
    db.commit()
    db.refresh(volunteer)
    logger.info("Volunteer %s activated by user=%s", volunteer.id, session.user_id)

    email_service.notify_user(db, volunteer, EmailTemplate.ACCOUNT_ACTIVATED)

    return ActionResult.ok(
        activation_redirect(db, volunteer, redirect_context),
        ACTIVATED_NOTICE,
    )


def deactivate(db: Session, session: UserSession, volunteer: User) -> ActionResult:
    """Deactivate a volunteer. No email is sent."""
    if not can(session.actor, Action.DEACTIVATE_VOLUNTEER, user_resource(volunteer)):
        return ActionResult.denied()

    was_active = volunteer.active
    volunteer.active = False
    _audit(
        db,
        session,
        AuditEventType.VOLUNTEER_DEACTIVATED,
        volunteer,
        details={"was_active": was_active},
    )
    db.commit()
    logger.info("Volunteer %s deactivated by user=%s", volunteer.id, session.user_id)

    return ActionResult.ok(volunteer_edit_path(volunteer.id), DEACTIVATED_NOTICE)


def update_volunteer(
    db: Session,
    session: UserSession,
    volunteer: User,
    attributes: dict[str, Any],
) -> ActionResult:
    """Edit a volunteer's profile. `active` is ignored; use activate/deactivate."""
    if not can(session.actor, Action.EDIT_VOLUNTEER, user_resource(volunteer)):
        return ActionResult.denied()

    attributes = strip_protected(attributes)
    changes = {k: v for k, v in attributes.items() if k in VOLUNTEER_FIELDS}

    try:
        errors: dict[str, list[str]] = {}
        validate_user_attributes(db, volunteer, changes, errors)
        if "supervisor_id" in changes:
            validate_supervisor(db, volunteer.organization_id, changes["supervisor_id"], errors)
        if errors:
            raise ValidationFailure(errors)
        apply_user_attributes(volunteer, changes)
        _audit(
            db,
            session,
            AuditEventType.VOLUNTEER_UPDATED,
            volunteer,
            details={"fields": sorted(changes)},
        )
        db.commit()
    except ValidationFailure as e:
        db.rollback()
        return ActionResult.invalid(e.errors)

    return ActionResult.ok(volunteer_edit_path(volunteer.id), UPDATED_NOTICE)


def create_volunteer(db: Session, session: UserSession, attributes: dict[str, Any]) -> ActionResult:
    """
    Create an active volunteer in the actor's organization and send the
    account setup email. The volunteer has no password until they set one.
    """
    actor = session.actor
    if not can(actor, Action.CREATE_VOLUNTEER, ResourceRef.organization(actor.org_id)):
        return ActionResult.denied()

    attributes = strip_protected(attributes)
    changes = {k: v for k, v in attributes.items() if k in VOLUNTEER_FIELDS}

    try:
        errors: dict[str, list[str]] = {}
        validate_user_attributes(db, None, changes, errors)
        validate_supervisor(db, actor.org_id, changes.get("supervisor_id"), errors)
        if errors:
            raise ValidationFailure(errors)

        volunteer = User(
            organization_id=actor.org_id,
            role=Role.VOLUNTEER.value,
            active=True,
            invitation_created_at=_now(),
        )
        apply_user_attributes(volunteer, changes)
        db.add(volunteer)
        db.flush()
        _audit(db, session, AuditEventType.VOLUNTEER_CREATED, volunteer)
        db.commit()
    except ValidationFailure as e:
        db.rollback()
        return ActionResult.invalid(e.errors)

    db.refresh(volunteer)
    logger.info("Volunteer %s created by user=%s", volunteer.id, session.user_id)
    email_service.notify_user(db, volunteer, EmailTemplate.ACCOUNT_SETUP)

    return ActionResult.ok(volunteer_edit_path(volunteer.id), CREATED_NOTICE)


def resend_invitation(db: Session, session: UserSession, volunteer: User) -> ActionResult:
    if not can(session.actor, Action.RESEND_INVITATION, user_resource(volunteer)):
        return ActionResult.denied()

    volunteer.invitation_created_at = _now()
    _audit(db, session, AuditEventType.VOLUNTEER_INVITATION_RESENT, volunteer)
    db.commit()
    db.refresh(volunteer)

    email_service.notify_user(db, volunteer, EmailTemplate.INVITATION)

    return ActionResult.ok(volunteer_edit_path(volunteer.id), INVITATION_SENT_NOTICE)
