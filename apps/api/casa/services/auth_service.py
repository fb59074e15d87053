"""Auth service - password sign-in."""

import logging
from datetime import datetime, timezone

from fastapi import Request
from sqlalchemy.orm import Session

from casa.core.security import verify_password
from casa.db.enums import AuditEventType
from casa.db.models import User
from casa.services import audit_service
from casa.services.user_service import get_user_by_email

logger = logging.getLogger(__name__)


def authenticate(db: Session, email: str, password: str, request: Request | None = None) -> User | None:
    """
    Check credentials. Returns the user on success.

    Inactive users and invited users without a password never authenticate.
    Failed attempts for known accounts are audited with a hashed email.
    """
    user = get_user_by_email(db, email)
    if user is None:
        logger.info("Login failed for unknown account %s", audit_service.hash_email(email))
        return None

    if not user.active or not verify_password(password, user.password_hash):
        audit_service.log_event(
            db,
            org_id=user.organization_id,
            event_type=AuditEventType.AUTH_LOGIN_FAILED,
            target_type="user",
            target_id=user.id,
            details={"email": audit_service.hash_email(user.email), "active": user.active},
            request=request,
        )
        db.commit()
        return None

    user.last_login_at = datetime.now(timezone.utc)
    audit_service.log_event(
        db,
        org_id=user.organization_id,
        event_type=AuditEventType.AUTH_LOGIN_SUCCESS,
        actor_user_id=user.id,
        target_type="user",
        target_id=user.id,
        request=request,
    )
    db.commit()
    db.refresh(user)
    return user
