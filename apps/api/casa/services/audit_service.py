"""Audit logging service - security and compliance event tracking.

Security guidelines:
- NEVER log secrets (passwords, tokens)
- Hash PII in details (use hash_email for emails)
- Use IDs instead of raw data where possible
- IP: Trust X-Forwarded-For only in production behind LB
"""

import hashlib
from typing import Any
from uuid import UUID

from fastapi import Request
from sqlalchemy.orm import Session

from casa.core.config import settings
from casa.db.enums import AuditEventType
from casa.db.models import AuditLog
from casa.schemas.auth import UserSession


def hash_email(email: str) -> str:
    """Hash email for audit log (prefix + SHA256 suffix for debugging)."""
    if not email:
        return ""
    prefix = email.split("@")[0][:3] if "@" in email else email[:3]
    suffix = hashlib.sha256(email.lower().encode()).hexdigest()[:12]
    return f"{prefix}...@[hash:{suffix}]"


def get_client_ip(request: Request | None) -> str | None:
    """
    Extract client IP from request.

    Only trusts X-Forwarded-For when TRUST_PROXY_HEADERS=True (behind reverse proxy).
    """
    if not request:
        return None

    if settings.TRUST_PROXY_HEADERS:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()

    if request.client:
        return request.client.host

    return None


def get_user_agent(request: Request | None) -> str | None:
    if not request:
        return None
    user_agent = request.headers.get("user-agent")
    return user_agent[:500] if user_agent else None


def log_event(
    db: Session,
    org_id: UUID,
    event_type: AuditEventType,
    actor_user_id: UUID | None = None,
    true_actor_user_id: UUID | None = None,
    target_type: str | None = None,
    target_id: UUID | None = None,
    details: dict[str, Any] | None = None,
    request: Request | None = None,
    request_id: str | None = None,
) -> AuditLog:
    """
    Add an audit event to the current transaction.

    Does not commit; the entry is persisted with the change it describes.
    """
    entry = AuditLog(
        organization_id=org_id,
        actor_user_id=actor_user_id,
        true_actor_user_id=true_actor_user_id,
        event_type=event_type.value,
        target_type=target_type,
        target_id=target_id,
        details=details,
        ip_address=get_client_ip(request),
        user_agent=get_user_agent(request),
        request_id=request_id,
    )
    db.add(entry)
    return entry


def log_session_event(
    db: Session,
    session: UserSession,
    event_type: AuditEventType,
    target_type: str | None = None,
    target_id: UUID | None = None,
    details: dict[str, Any] | None = None,
) -> AuditLog:
    """Audit an action performed through an authenticated session."""
    return log_event(
        db,
        org_id=session.org_id,
        event_type=event_type,
        actor_user_id=session.user_id,
        true_actor_user_id=session.true_user_id if session.is_impersonating else None,
        target_type=target_type,
        target_id=target_id,
        details=details,
        request_id=session.request_id,
    )


def list_events(
    db: Session,
    org_id: UUID,
    event_type: AuditEventType | None = None,
    target_id: UUID | None = None,
) -> list[AuditLog]:
    query = db.query(AuditLog).filter(AuditLog.organization_id == org_id)
    if event_type:
        query = query.filter(AuditLog.event_type == event_type.value)
    if target_id:
        query = query.filter(AuditLog.target_id == target_id)
    return query.order_by(AuditLog.created_at.desc()).all()
