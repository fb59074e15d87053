"""Tests for SQL scopes over collections."""

from casa.core.permissions import Action
from casa.core.policies import apply_scope
from casa.db.enums import Role
from casa.db.models import Case, CaseContact, User
from casa.schemas.auth import SessionIdentity, UserSession

from conftest import make_case, make_contact


def _session(user: User) -> UserSession:
    return UserSession(
        identity=SessionIdentity(active_identity=user.id),
        org_id=user.organization_id,
        role=Role(user.role),
        email=user.email,
        display_name=user.display_name,
    )


def test_reimbursement_scope_excludes_other_org_contacts(
    db, test_org, other_org, casa_admin, volunteer, other_org_volunteer
):
    own = make_contact(db, make_case(db, test_org, [volunteer]), creator=volunteer)
    foreign = make_contact(db, make_case(db, other_org, [other_org_volunteer]), creator=other_org_volunteer)

    actor = _session(casa_admin).actor
    ids = {c.id for c in apply_scope(actor, Action.VIEW_REIMBURSEMENTS, db.query(CaseContact)).all()}

    assert own.id in ids
    assert foreign.id not in ids


def test_reimbursement_scope_empty_for_supervisors_and_volunteers(db, test_org, supervisor, volunteer):
    make_contact(db, make_case(db, test_org, [volunteer]), creator=volunteer)

    for user in (supervisor, volunteer):
        query = apply_scope(_session(user).actor, Action.VIEW_REIMBURSEMENTS, db.query(CaseContact))
        assert query.all() == []


def test_case_scope_for_volunteer_is_assigned_cases(db, test_org, volunteer, other_volunteer, supervisor):
    mine = make_case(db, test_org, [volunteer])
    theirs = make_case(db, test_org, [other_volunteer])

    volunteer_ids = {c.id for c in apply_scope(_session(volunteer).actor, Action.VIEW_CASE, db.query(Case))}
    supervisor_ids = {c.id for c in apply_scope(_session(supervisor).actor, Action.VIEW_CASE, db.query(Case))}

    assert volunteer_ids == {mine.id}
    assert supervisor_ids == {mine.id, theirs.id}


def test_volunteer_list_scope_is_org_volunteers(db, supervisor, volunteer, other_org_volunteer, casa_admin):
    query = apply_scope(_session(supervisor).actor, Action.LIST_VOLUNTEERS, db.query(User))
    ids = {u.id for u in query}

    assert volunteer.id in ids
    assert other_org_volunteer.id not in ids
    assert casa_admin.id not in ids
    assert supervisor.id not in ids
