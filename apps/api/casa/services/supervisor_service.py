"""Supervisor service - supervisor accounts created by CASA admins."""

import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.orm import Session

from casa.core.errors import ValidationFailure
from casa.core.permissions import Action, ResourceRef, can
from casa.core.policies import apply_scope
from casa.db.enums import AuditEventType, EmailTemplate, Role
from casa.db.models import User
from casa.schemas.auth import UserSession
from casa.services import audit_service, email_service
from casa.services.results import ActionResult
from casa.services.user_service import (
    PROFILE_FIELDS,
    apply_user_attributes,
    strip_protected,
    validate_user_attributes,
)

logger = logging.getLogger(__name__)

SUPERVISORS_PATH = "/supervisors"
CREATED_NOTICE = "New supervisor created successfully."


def list_supervisors(db: Session, session: UserSession) -> list[User]:
    query = apply_scope(session.actor, Action.LIST_SUPERVISORS, db.query(User))
    return query.order_by(User.display_name).all()


def create_supervisor(db: Session, session: UserSession, attributes: dict[str, Any]) -> ActionResult:
    """
    Create an active supervisor without a password and send the account
    setup email. Invalid attributes create nothing and send nothing.
    """
    actor = session.actor
    if not can(actor, Action.CREATE_SUPERVISOR, ResourceRef.organization(actor.org_id)):
        return ActionResult.denied()

    changes = {k: v for k, v in strip_protected(attributes).items() if k in PROFILE_FIELDS}

    try:
        errors: dict[str, list[str]] = {}
        validate_user_attributes(db, None, changes, errors)
        if errors:
            raise ValidationFailure(errors)

        supervisor = User(
            organization_id=actor.org_id,
            role=Role.SUPERVISOR.value,
            active=True,
            invitation_created_at=datetime.now(timezone.utc),
        )
        apply_user_attributes(supervisor, changes)
        db.add(supervisor)
        db.flush()
        audit_service.log_session_event(
            db,
            session,
            AuditEventType.SUPERVISOR_CREATED,
            target_type="user",
            target_id=supervisor.id,
        )
        db.commit()
    except ValidationFailure as e:
        db.rollback()
        return ActionResult.invalid(e.errors)

    db.refresh(supervisor)
    logger.info("Supervisor %s created by user=%s", supervisor.id, session.user_id)
    email_service.notify_user(db, supervisor, EmailTemplate.ACCOUNT_SETUP)

    return ActionResult.ok(SUPERVISORS_PATH, CREATED_NOTICE)
