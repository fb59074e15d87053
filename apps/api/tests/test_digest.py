"""Tests for the supervisor weekly digest."""

from datetime import datetime, timedelta, timezone

from casa.db.enums import EmailTemplate, JobStatus, JobType, Role
from casa.db.models import Job
from casa.services import digest_service, email_service

from conftest import make_case, make_contact, make_user


def _digests(db, supervisor):
    return email_service.list_user_emails(db, supervisor.id, EmailTemplate.WEEKLY_DIGEST)


def _supervise(db, supervisor, *volunteers):
    for volunteer in volunteers:
        volunteer.supervisor_id = supervisor.id
    db.commit()


def test_digest_summarises_recent_contacts(db, test_org, supervisor, volunteer):
    _supervise(db, supervisor, volunteer)
    case = make_case(db, test_org, [volunteer])
    make_contact(db, case, creator=volunteer, miles_driven=12)
    old = make_contact(db, case, creator=volunteer, miles_driven=500)
    old.occurred_at = datetime.now(timezone.utc) - timedelta(days=10)
    db.commit()

    assert digest_service.queue_supervisor_digests(db, test_org.id) == 1

    emails = _digests(db, supervisor)
    assert len(emails) == 1
    body = emails[0].body
    assert emails[0].recipient_email == supervisor.email
    assert f"Val Volunteer: 1 contact(s) on {case.case_number}, 12 miles driven" in body
    assert "2 contact(s)" not in body


def test_digest_lists_quiet_volunteers(db, test_org, supervisor, volunteer):
    _supervise(db, supervisor, volunteer)

    digest_service.queue_supervisor_digests(db, test_org.id)

    assert "Val Volunteer: no contacts logged" in _digests(db, supervisor)[0].body


def test_digest_skips_inactive_volunteers(db, test_org, supervisor, volunteer, inactive_volunteer):
    _supervise(db, supervisor, volunteer, inactive_volunteer)

    digest_service.queue_supervisor_digests(db, test_org.id)

    body = _digests(db, supervisor)[0].body
    assert "Val Volunteer" in body
    assert inactive_volunteer.display_name not in body


def test_no_digest_without_active_volunteers(db, test_org, supervisor, inactive_volunteer):
    _supervise(db, supervisor, inactive_volunteer)

    assert digest_service.queue_supervisor_digests(db, test_org.id) == 0
    assert _digests(db, supervisor) == []


def test_no_digest_for_inactive_supervisor(db, test_org, volunteer):
    former = make_user(db, test_org, Role.SUPERVISOR, active=False)
    _supervise(db, former, volunteer)

    assert digest_service.queue_supervisor_digests(db, test_org.id) == 0
    assert _digests(db, former) == []


def test_digest_stays_in_organization(db, test_org, other_org, supervisor, volunteer):
    _supervise(db, supervisor, volunteer)

    assert digest_service.queue_supervisor_digests(db, other_org.id) == 0
    assert _digests(db, supervisor) == []


def test_schedule_digest_jobs_per_organization(db, test_org, other_org):
    jobs = digest_service.schedule_digest_jobs(db)

    assert {job.organization_id for job in jobs} == {test_org.id, other_org.id}
    stored = db.query(Job).filter(Job.job_type == JobType.SUPERVISOR_DIGEST.value).all()
    assert len(stored) == 2
    assert all(job.status == JobStatus.PENDING.value for job in stored)
