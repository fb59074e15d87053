"""Supervisor weekly digest.

A SUPERVISOR_DIGEST job per organization; the worker turns it into one
WEEKLY_DIGEST email per active supervisor, summarising the case contacts
their active volunteers logged during the digest window.
"""

import html
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from casa.core.config import settings
from casa.db.enums import EmailTemplate, JobType, Role
from casa.db.models import CaseContact, Job, Organization, User
from casa.services import email_service, job_service

logger = logging.getLogger(__name__)


@dataclass
class VolunteerActivity:
    volunteer: User
    contact_count: int = 0
    miles_driven: int = 0
    case_numbers: set[str] = field(default_factory=set)


def _active_supervisors(db: Session, org_id: UUID) -> list[User]:
    return (
        db.query(User)
        .filter(
            User.organization_id == org_id,
            User.role == Role.SUPERVISOR.value,
            User.active.is_(True),
        )
        .order_by(User.display_name)
        .all()
    )


def volunteer_activity(db: Session, supervisor: User, since: datetime) -> list[VolunteerActivity]:
    """Per supervised active volunteer, the contacts they logged since `since`."""
    volunteers = (
        db.query(User)
        .filter(
            User.supervisor_id == supervisor.id,
            User.organization_id == supervisor.organization_id,
            User.role == Role.VOLUNTEER.value,
            User.active.is_(True),
        )
        .order_by(User.display_name)
        .all()
    )
    activity = {v.id: VolunteerActivity(volunteer=v) for v in volunteers}
    if not activity:
        return []

    contacts = (
        db.query(CaseContact)
        .options(joinedload(CaseContact.case))
        .filter(
            CaseContact.creator_id.in_(list(activity)),
            CaseContact.occurred_at >= since,
        )
        .all()
    )
    for contact in contacts:
        entry = activity[contact.creator_id]
        entry.contact_count += 1
        entry.miles_driven += contact.miles_driven
        entry.case_numbers.add(contact.case.case_number)

    return list(activity.values())


def render_digest(supervisor: User, activity: list[VolunteerActivity]) -> tuple[str, str]:
    subject, intro = email_service.render_template(EmailTemplate.WEEKLY_DIGEST, supervisor)

    items = []
    for entry in activity:
        name = html.escape(entry.volunteer.display_name)
        if not entry.contact_count:
            items.append(f"<li>{name}: no contacts logged</li>")
            continue
        cases = html.escape(", ".join(sorted(entry.case_numbers)))
        items.append(
            f"<li>{name}: {entry.contact_count} contact(s) on {cases}, "
            f"{entry.miles_driven} miles driven</li>"
        )
    return subject, f"{intro}<ul>{''.join(items)}</ul>"


def queue_supervisor_digests(db: Session, org_id: UUID, now: datetime | None = None) -> int:
    """
    Queue one digest email per active supervisor with active volunteers.

    A supervisor whose email cannot be queued is logged and skipped.
    Returns the number of emails queued.
    """
    since = (now or datetime.now(timezone.utc)) - timedelta(days=settings.DIGEST_WINDOW_DAYS)
    queued = 0

    for supervisor in _active_supervisors(db, org_id):
        activity = volunteer_activity(db, supervisor, since)
        if not activity:
            continue

        subject, body = render_digest(supervisor, activity)
        try:
            email_service.queue_email(
                db,
                org_id=org_id,
                template=EmailTemplate.WEEKLY_DIGEST,
                recipient_email=supervisor.email,
                subject=subject,
                body=body,
                user_id=supervisor.id,
            )
        except SQLAlchemyError:
            db.rollback()
            logger.warning("Digest not queued for supervisor=%s", supervisor.id, exc_info=True)
            continue
        queued += 1

    logger.info("Queued %s supervisor digests for org=%s", queued, org_id)
    return queued


def schedule_digest_jobs(db: Session) -> list[Job]:
    """Schedule a SUPERVISOR_DIGEST job for every organization."""
    jobs = [
        job_service.schedule_job(db, org.id, JobType.SUPERVISOR_DIGEST, payload={})
        for org in db.query(Organization).order_by(Organization.name).all()
    ]
    db.commit()
    return jobs
