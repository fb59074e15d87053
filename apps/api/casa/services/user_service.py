"""User service - lookups, attribute validation, own profile and password updates."""

import logging
import re
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from casa.core.config import settings
from casa.core.errors import AuthorizationDenied, ValidationFailure
from casa.core.permissions import Action, ResourceRef, can
from casa.core.security import get_password_hash, verify_password
from casa.db.enums import AuditEventType, EmailTemplate, Role
from casa.db.models import User
from casa.schemas.auth import SessionIdentity, UserSession
from casa.services import audit_service, email_service
from casa.services.results import PROFILE_EDIT_PATH, ActionResult

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")

# Only changed through dedicated operations (activate/deactivate, password, admin)
PROTECTED_ATTRIBUTES = frozenset(
    {"active", "role", "organization_id", "password_hash", "token_version"}
)

PROFILE_FIELDS = ("display_name", "email", "phone_number")

PROFILE_UPDATED_NOTICE = "Profile was successfully updated."


# =============================================================================
# Lookups
# =============================================================================

def get_user_by_id(db: Session, user_id: UUID) -> User | None:
    """Get user by ID."""
    return db.query(User).filter(User.id == user_id).first()


def get_user_by_email(db: Session, email: str) -> User | None:
    """Get user by email (case-insensitive)."""
    return db.query(User).filter(User.email == normalize_email(email)).first()


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def user_resource(user: User) -> ResourceRef:
    return ResourceRef.user(user.id, user.organization_id, user.role)


# =============================================================================
# Attribute handling
# =============================================================================

def strip_protected(attributes: dict[str, Any]) -> dict[str, Any]:
    """Drop attributes that generic update paths may never set."""
    stripped = {k: v for k, v in attributes.items() if k not in PROTECTED_ATTRIBUTES}
    dropped = sorted(set(attributes) - set(stripped))
    if dropped:
        logger.info("Ignoring protected attributes on update: %s", ", ".join(dropped))
    return stripped


def _add_error(errors: dict[str, list[str]], field: str, message: str) -> None:
    errors.setdefault(field, []).append(message)


def validate_user_attributes(
    db: Session,
    user: User | None,
    attributes: dict[str, Any],
    errors: dict[str, list[str]],
) -> None:
    """
    Validate profile attributes for a new (user=None) or existing user.

    Only attributes present in the dict are checked, except on create
    where display_name and email are required.
    """
    creating = user is None

    if creating or "display_name" in attributes:
        if not (attributes.get("display_name") or "").strip():
            _add_error(errors, "display_name", "can't be blank")

    if creating or "email" in attributes:
        email = normalize_email(attributes.get("email"))
        if not email:
            _add_error(errors, "email", "can't be blank")
        elif not EMAIL_RE.fullmatch(email):
            _add_error(errors, "email", "is invalid")
        else:
            existing = get_user_by_email(db, email)
            if existing and (creating or existing.id != user.id):
                _add_error(errors, "email", "has already been taken")


def validate_supervisor(
    db: Session,
    org_id: UUID,
    supervisor_id: UUID | None,
    errors: dict[str, list[str]],
) -> None:
    """A volunteer's supervisor must be an active supervisor in the same organization."""
    if supervisor_id is None:
        return
    supervisor = get_user_by_id(db, supervisor_id)
    if (
        supervisor is None
        or supervisor.organization_id != org_id
        or supervisor.role != Role.SUPERVISOR.value
        or not supervisor.active
    ):
        _add_error(errors, "supervisor_id", "must be an active supervisor in your organization")


def apply_user_attributes(user: User, attributes: dict[str, Any]) -> None:
    """Assign already-validated attributes."""
    for field, value in attributes.items():
        if field == "email":
            value = normalize_email(value)
        elif field == "display_name":
            value = value.strip()
        elif field == "phone_number":
            value = (value or "").strip() or None
        setattr(user, field, value)


def validate_password_change(
    user: User,
    current_password: str,
    password: str,
    password_confirmation: str,
) -> dict[str, list[str]]:
    errors: dict[str, list[str]] = {}
    if not verify_password(current_password, user.password_hash):
        _add_error(errors, "current_password", "is invalid")
    if not password:
        _add_error(errors, "password", "can't be blank")
    elif len(password) < settings.PASSWORD_MIN_LENGTH:
        _add_error(
            errors,
            "password",
            f"is too short (minimum is {settings.PASSWORD_MIN_LENGTH} characters)",
        )
    if password != password_confirmation:
        _add_error(errors, "password_confirmation", "doesn't match Password")
    return errors


# =============================================================================
# Own profile
# =============================================================================

def get_own_profile(db: Session, session: UserSession) -> User:
    """Load the session's active user for the profile view."""
    user = get_user_by_id(db, session.user_id)
    if user is None or not can(session.actor, Action.VIEW_PROFILE, user_resource(user)):
        raise AuthorizationDenied()
    return user


def update_profile(db: Session, session: UserSession, attributes: dict[str, Any]) -> ActionResult:
    """
    Update the active identity's own profile.

    `active` and other protected attributes are silently dropped.
    """
    user = get_user_by_id(db, session.user_id)
    if user is None or not can(session.actor, Action.EDIT_PROFILE, user_resource(user)):
        return ActionResult.denied()

    attributes = strip_protected(attributes)
    changes = {k: v for k, v in attributes.items() if k in PROFILE_FIELDS}

    try:
        errors: dict[str, list[str]] = {}
        validate_user_attributes(db, user, changes, errors)
        if errors:
            raise ValidationFailure(errors)
        apply_user_attributes(user, changes)
        audit_service.log_session_event(
            db,
            session,
            AuditEventType.USER_PROFILE_UPDATED,
            target_type="user",
            target_id=user.id,
            details={"fields": sorted(changes)},
        )
        db.commit()
    except ValidationFailure as e:
        db.rollback()
        return ActionResult.invalid(e.errors)

    return ActionResult.ok(PROFILE_EDIT_PATH, PROFILE_UPDATED_NOTICE)


def update_password(
    db: Session,
    session: UserSession,
    current_password: str,
    password: str,
    password_confirmation: str,
) -> ActionResult:
    """
    Change the active identity's password.

    On success all existing sessions of the user are revoked (token_version
    bump) and a "password changed" email goes to the account owner. The
    caller's session is re-issued only when the true user is the target;
    an impersonator changing a volunteer's password keeps their own session.
    """
    user = get_user_by_id(db, session.user_id)
    if user is None or not can(session.actor, Action.EDIT_PROFILE, user_resource(user)):
        return ActionResult.denied()

    errors = validate_password_change(user, current_password, password, password_confirmation)
    if errors:
        db.rollback()
        return ActionResult.invalid(errors)

    user.password_hash = get_password_hash(password)
    user.token_version += 1
    audit_service.log_session_event(
        db,
        session,
        AuditEventType.USER_PASSWORD_CHANGED,
        target_type="user",
        target_id=user.id,
    )
    db.commit()
    db.refresh(user)

    email_service.notify_user(db, user, EmailTemplate.PASSWORD_CHANGED)

    identity = None
    if session.true_user_id == user.id:
        identity = SessionIdentity(active_identity=user.id)
    return ActionResult.ok(PROFILE_EDIT_PATH, PROFILE_UPDATED_NOTICE, identity=identity)
