"""Email service - notification templates, queueing and delivery bookkeeping.

Emails are never sent inline. Queueing creates an EmailLog and a SEND_EMAIL
job; the worker delivers it. Lifecycle notifications are best-effort: a
failure to queue is logged and never undoes the change that triggered it.
"""

import html
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from casa.core.config import settings
from casa.core.errors import NotificationDispatchFailure
from casa.db.enums import EmailStatus, EmailTemplate, JobType, Role
from casa.db.models import EmailLog, Job, User
from casa.services.audit_service import hash_email
from casa.services.job_service import schedule_job

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TemplateDef:
    subject: str
    body: str


TEMPLATES: dict[EmailTemplate, TemplateDef] = {
    EmailTemplate.ACCOUNT_SETUP: TemplateDef(
        subject="Create a password & set up your account",
        body=(
            "<p>Hello {display_name},</p>"
            "<p>A {org_name} {role_label} account has been created for you. "
            'Set your password at <a href="{login_url}">{login_url}</a>.</p>'
        ),
    ),
    EmailTemplate.INVITATION: TemplateDef(
        subject="Invitation instructions",
        body=(
            "<p>Hello {display_name},</p>"
            "<p>You have been invited to join {org_name}. "
            'Accept the invitation at <a href="{login_url}">{login_url}</a>.</p>'
        ),
    ),
    EmailTemplate.ACCOUNT_ACTIVATED: TemplateDef(
        subject="Your CASA volunteer account has been activated",
        body=(
            "<p>Hello {display_name},</p>"
            "<p>Your volunteer account with {org_name} has been activated. "
            'You can log in at <a href="{login_url}">{login_url}</a>.</p>'
        ),
    ),
    EmailTemplate.PASSWORD_CHANGED: TemplateDef(
        subject="Your CASA password has been changed",
        body=(
            "<p>Hello {display_name},</p>"
            "<p>The password for your {org_name} account was just changed. "
            "If you did not make this change, contact your CASA administrator.</p>"
        ),
    ),
    EmailTemplate.WEEKLY_DIGEST: TemplateDef(
        subject="Weekly summary of your volunteers' activity",
        body=(
            "<p>Hello {display_name},</p>"
            "<p>Here is what your {org_name} volunteers logged this week.</p>"
        ),
    ),
}

ROLE_LABELS = {
    Role.VOLUNTEER: "volunteer",
    Role.SUPERVISOR: "supervisor",
    Role.CASA_ADMIN: "admin",
}


def render_template(template: EmailTemplate, user: User) -> tuple[str, str]:
    """Return (subject, html body) for a user. Variables are HTML-escaped."""
    definition = TEMPLATES[template]
    variables = {
        "display_name": html.escape(user.display_name),
        "role_label": ROLE_LABELS[Role(user.role)],
        "org_name": html.escape(user.organization.name),
        "login_url": html.escape(f"{settings.APP_URL.rstrip('/')}/login"),
    }
    return definition.subject, definition.body.format(**variables)


def queue_email(
    db: Session,
    org_id: UUID,
    template: EmailTemplate,
    recipient_email: str,
    subject: str,
    body: str,
    user_id: UUID | None = None,
) -> tuple[EmailLog, Job]:
    """
    Queue an email for sending.

    Creates an EmailLog record and schedules a job to send it.
    Returns (email_log, job).
    """
    email_log = EmailLog(
        organization_id=org_id,
        user_id=user_id,
        template=template.value,
        recipient_email=recipient_email,
        subject=subject,
        body=body,
        status=EmailStatus.PENDING.value,
    )
    db.add(email_log)
    db.flush()  # Get ID before creating job

    job = schedule_job(
        db=db,
        org_id=org_id,
        job_type=JobType.SEND_EMAIL,
        payload={"email_log_id": str(email_log.id)},
    )

    email_log.job_id = job.id
    db.commit()
    return email_log, job


def queue_notification(db: Session, user: User, template: EmailTemplate) -> EmailLog:
    """
    Queue a system notification to a user.

    Raises:
        NotificationDispatchFailure: the email could not be queued
    """
    subject, body = render_template(template, user)
    try:
        email_log, _ = queue_email(
            db,
            org_id=user.organization_id,
            template=template,
            recipient_email=user.email,
            subject=subject,
            body=body,
            user_id=user.id,
        )
    except SQLAlchemyError as e:
        db.rollback()
        raise NotificationDispatchFailure(f"Could not queue {template.value} email") from e
    return email_log


def notify_user(db: Session, user: User, template: EmailTemplate) -> EmailLog | None:
    """
    Best-effort notification. Call only after the triggering change is committed.

    Returns the queued EmailLog, or None when queueing failed.
    """
    try:
        email_log = queue_notification(db, user, template)
    except NotificationDispatchFailure:
        logger.warning(
            "Notification %s not queued for user=%s recipient=%s",
            template.value,
            user.id,
            hash_email(user.email),
            exc_info=True,
        )
        return None
    logger.info(
        "Queued %s email_log=%s for user=%s",
        template.value,
        email_log.id,
        user.id,
    )
    return email_log


def mark_email_sent(db: Session, email_log: EmailLog, external_id: str | None = None) -> EmailLog:
    """Mark an email as sent."""
    email_log.status = EmailStatus.SENT.value
    email_log.sent_at = datetime.now(timezone.utc)
    email_log.external_id = external_id
    email_log.error = None
    db.commit()
    db.refresh(email_log)
    return email_log


def mark_email_failed(db: Session, email_log: EmailLog, error: str) -> EmailLog:
    """Mark an email as failed."""
    email_log.status = EmailStatus.FAILED.value
    email_log.error = error
    db.commit()
    db.refresh(email_log)
    return email_log


def list_user_emails(
    db: Session,
    user_id: UUID,
    template: EmailTemplate | None = None,
) -> list[EmailLog]:
    """List emails queued for a user, newest first."""
    query = db.query(EmailLog).filter(EmailLog.user_id == user_id)
    if template:
        query = query.filter(EmailLog.template == template.value)
    return query.order_by(EmailLog.created_at.desc()).all()
