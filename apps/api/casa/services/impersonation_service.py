"""Impersonation service - act as a volunteer while keeping the true identity."""

import logging

from sqlalchemy.orm import Session

from casa.core.permissions import Action, can
from casa.db.enums import AuditEventType
from casa.db.models import User
from casa.schemas.auth import SessionIdentity, UserSession
from casa.services import audit_service
from casa.services.results import HOME_PATH, ActionResult
from casa.services.user_service import user_resource

logger = logging.getLogger(__name__)


def impersonate(db: Session, session: UserSession, target: User) -> ActionResult:
    """
    Switch the session's active identity to `target`.

    The permission check uses the active identity, so a session that is
    already impersonating a volunteer cannot impersonate further. Inactive
    volunteers cannot be impersonated: their sessions are rejected. On denial
    the identity is left untouched.
    """
    if not target.active or not can(session.actor, Action.IMPERSONATE, user_resource(target)):
        logger.info(
            "Impersonation denied: user=%s target=%s",
            session.user_id,
            target.id,
        )
        return ActionResult.denied()

    identity = SessionIdentity(
        active_identity=target.id,
        original_identity=session.true_user_id,
    )
    audit_service.log_event(
        db,
        org_id=session.org_id,
        event_type=AuditEventType.IMPERSONATION_STARTED,
        actor_user_id=session.user_id,
        true_actor_user_id=session.true_user_id,
        target_type="user",
        target_id=target.id,
        request_id=session.request_id,
    )
    db.commit()
    logger.info("User %s impersonating %s", session.true_user_id, target.id)

    return ActionResult.ok(HOME_PATH, identity=identity)


def stop_impersonating(db: Session, session: UserSession) -> ActionResult:
    """Restore the true identity. No-op when not impersonating."""
    if not session.is_impersonating:
        return ActionResult.ok(HOME_PATH)

    audit_service.log_event(
        db,
        org_id=session.org_id,
        event_type=AuditEventType.IMPERSONATION_STOPPED,
        actor_user_id=session.true_user_id,
        true_actor_user_id=session.true_user_id,
        target_type="user",
        target_id=session.user_id,
        request_id=session.request_id,
    )
    db.commit()
    logger.info("User %s stopped impersonating %s", session.true_user_id, session.user_id)

    return ActionResult.ok(
        HOME_PATH,
        identity=SessionIdentity(active_identity=session.true_user_id),
    )
