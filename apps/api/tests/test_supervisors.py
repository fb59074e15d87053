"""Tests for supervisor accounts: listing and creation with the account setup email."""

import pytest

from casa.db.enums import AuditEventType, EmailTemplate, Role
from casa.db.models import AuditLog, Job, User
from casa.services import email_service

from conftest import flash_notice, make_user

NOT_AUTHORIZED = "Sorry, you are not authorized to perform this action."


@pytest.mark.asyncio
async def test_admin_creates_supervisor(db, client_for, casa_admin):
    async with client_for(casa_admin) as client:
        response = await client.post(
            "/supervisors",
            json={"display_name": "Sam Supervisor", "email": "Sam@Example.org"},
        )

    assert response.status_code == 303
    assert response.headers["location"] == "/supervisors"
    assert flash_notice(response) == "New supervisor created successfully."

    supervisor = db.query(User).filter(User.email == "sam@example.org").one()
    assert supervisor.role == Role.SUPERVISOR.value
    assert supervisor.organization_id == casa_admin.organization_id
    assert supervisor.active is True
    assert supervisor.password_hash is None
    assert supervisor.invitation_created_at is not None

    emails = email_service.list_user_emails(db, supervisor.id, EmailTemplate.ACCOUNT_SETUP)
    assert len(emails) == 1
    assert emails[0].recipient_email == "sam@example.org"
    assert "Test CASA supervisor account" in emails[0].body

    event = (
        db.query(AuditLog)
        .filter(AuditLog.event_type == AuditEventType.SUPERVISOR_CREATED.value)
        .one()
    )
    assert event.target_id == supervisor.id


@pytest.mark.asyncio
async def test_create_supervisor_ignores_role_and_org(db, client_for, casa_admin, other_org):
    async with client_for(casa_admin) as client:
        await client.post(
            "/supervisors",
            json={
                "display_name": "Sam Supervisor",
                "email": "sam@example.org",
                "role": "casa_admin",
                "organization_id": str(other_org.id),
            },
        )

    supervisor = db.query(User).filter(User.email == "sam@example.org").one()
    assert supervisor.role == Role.SUPERVISOR.value
    assert supervisor.organization_id == casa_admin.organization_id


@pytest.mark.asyncio
@pytest.mark.parametrize("role", [Role.SUPERVISOR, Role.VOLUNTEER])
async def test_only_admins_create_supervisors(db, client_for, test_org, role):
    user = make_user(db, test_org, role)

    async with client_for(user) as client:
        response = await client.post(
            "/supervisors", json={"display_name": "Sneaky", "email": "sneaky@test.com"}
        )

    assert response.status_code == 303
    assert flash_notice(response) == NOT_AUTHORIZED
    assert db.query(User).filter(User.email == "sneaky@test.com").count() == 0
    assert db.query(Job).count() == 0


@pytest.mark.asyncio
async def test_invalid_supervisor_sends_nothing(db, client_for, casa_admin, supervisor):
    async with client_for(casa_admin) as client:
        response = await client.post(
            "/supervisors", json={"display_name": "", "email": supervisor.email}
        )

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "invalid"
    assert body["errors"]["display_name"] == ["can't be blank"]
    assert body["errors"]["email"] == ["has already been taken"]
    assert db.query(User).filter(User.role == Role.SUPERVISOR.value).count() == 1
    assert db.query(Job).count() == 0


@pytest.mark.asyncio
async def test_supervisor_list_is_org_scoped(
    db, client_for, casa_admin, supervisor, other_org
):
    make_user(db, other_org, Role.SUPERVISOR)

    async with client_for(casa_admin) as client:
        response = await client.get("/supervisors")

    assert response.status_code == 200
    assert [s["id"] for s in response.json()] == [str(supervisor.id)]


@pytest.mark.asyncio
async def test_volunteer_sees_no_supervisors(db, client_for, volunteer, supervisor):
    async with client_for(volunteer) as client:
        response = await client.get("/supervisors")

    assert response.status_code == 200
    assert response.json() == []
