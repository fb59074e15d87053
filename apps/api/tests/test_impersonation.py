"""Tests for impersonation: dual session identity and denial behavior."""

import pytest

from casa.core.deps import COOKIE_NAME
from casa.core.security import decode_session_token
from casa.db.enums import AuditEventType
from casa.services import audit_service

from conftest import client_with_token, flash_notice

NOT_AUTHORIZED = "Sorry, you are not authorized to perform this action."


@pytest.mark.asyncio
async def test_admin_impersonates_volunteer(db, client_for, casa_admin, volunteer):
    async with client_for(casa_admin) as client:
        response = await client.get(f"/volunteers/{volunteer.id}/impersonate")

    assert response.status_code == 302
    assert response.headers["location"] == "/"

    token = response.cookies.get(COOKIE_NAME)
    payload = decode_session_token(token)
    assert payload["sub"] == str(volunteer.id)
    assert payload["true_sub"] == str(casa_admin.id)

    async with client_with_token(token) as client:
        me = (await client.get("/auth/me")).json()

    assert me["user_id"] == str(volunteer.id)
    assert me["role"] == "volunteer"
    assert me["true_user_id"] == str(casa_admin.id)
    assert me["is_impersonating"] is True

    events = audit_service.list_events(
        db, casa_admin.organization_id, event_type=AuditEventType.IMPERSONATION_STARTED
    )
    assert len(events) == 1
    assert events[0].true_actor_user_id == casa_admin.id


@pytest.mark.asyncio
async def test_supervisor_impersonates_same_org_volunteer(client_for, supervisor, volunteer):
    async with client_for(supervisor) as client:
        response = await client.get(f"/volunteers/{volunteer.id}/impersonate")

    assert response.status_code == 302
    assert decode_session_token(response.cookies.get(COOKIE_NAME))["sub"] == str(volunteer.id)


@pytest.mark.asyncio
async def test_volunteer_cannot_impersonate_other_volunteer(client_for, volunteer, other_volunteer):
    async with client_for(volunteer) as client:
        response = await client.get(f"/volunteers/{other_volunteer.id}/impersonate")
        assert response.status_code == 302
        assert response.headers["location"] == "/"
        assert flash_notice(response) == NOT_AUTHORIZED
        assert COOKIE_NAME not in response.cookies

        me = (await client.get("/auth/me")).json()

    assert me["user_id"] == str(volunteer.id)
    assert me["is_impersonating"] is False


@pytest.mark.asyncio
async def test_supervisor_cannot_impersonate_admin(client_for, supervisor, casa_admin):
    async with client_for(supervisor) as client:
        response = await client.get(f"/volunteers/{casa_admin.id}/impersonate")

    assert response.headers["location"] == "/"
    assert flash_notice(response) == NOT_AUTHORIZED
    assert COOKIE_NAME not in response.cookies


@pytest.mark.asyncio
async def test_cannot_impersonate_across_organizations(client_for, other_org_admin, volunteer):
    async with client_for(other_org_admin) as client:
        response = await client.get(f"/volunteers/{volunteer.id}/impersonate")

    assert flash_notice(response) == NOT_AUTHORIZED
    assert COOKIE_NAME not in response.cookies


@pytest.mark.asyncio
async def test_impersonated_session_cannot_impersonate_further(
    client_for, casa_admin, volunteer, other_volunteer
):
    async with client_for(volunteer, true_user=casa_admin) as client:
        response = await client.get(f"/volunteers/{other_volunteer.id}/impersonate")

    assert flash_notice(response) == NOT_AUTHORIZED
    assert COOKIE_NAME not in response.cookies


@pytest.mark.asyncio
async def test_stop_impersonating_restores_true_user(client_for, casa_admin, volunteer):
    async with client_for(volunteer, true_user=casa_admin) as client:
        response = await client.post("/auth/stop-impersonating")

    assert response.status_code == 303
    assert response.headers["location"] == "/"
    payload = decode_session_token(response.cookies.get(COOKIE_NAME))
    assert payload["sub"] == str(casa_admin.id)
    assert "true_sub" not in payload


@pytest.mark.asyncio
async def test_stop_impersonating_without_impersonation_is_noop(client_for, casa_admin):
    async with client_for(casa_admin) as client:
        response = await client.post("/auth/stop-impersonating")

    assert response.status_code == 303
    assert COOKIE_NAME not in response.cookies


@pytest.mark.asyncio
async def test_impersonation_ends_when_true_user_sessions_revoked(db, client_for, casa_admin, volunteer):
    async with client_for(volunteer, true_user=casa_admin) as client:
        casa_admin.token_version += 1
        db.commit()
        response = await client.get("/auth/me")

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_cannot_impersonate_inactive_volunteer(client_for, casa_admin, inactive_volunteer):
    async with client_for(casa_admin) as client:
        response = await client.get(f"/volunteers/{inactive_volunteer.id}/impersonate")
        assert response.status_code == 302
        assert response.headers["location"] == "/"
        assert flash_notice(response) == NOT_AUTHORIZED
        assert COOKIE_NAME not in response.cookies

        me = await client.get("/auth/me")

    assert me.status_code == 200
    assert me.json()["user_id"] == str(casa_admin.id)
    assert me.json()["is_impersonating"] is False


@pytest.mark.asyncio
async def test_stop_impersonating_after_volunteer_deactivated(db, client_for, casa_admin, volunteer):
    async with client_for(volunteer, true_user=casa_admin) as client:
        volunteer.active = False
        db.commit()

        # Acting as the deactivated volunteer is no longer possible
        assert (await client.get("/auth/me")).status_code == 401

        response = await client.post("/auth/stop-impersonating")
        assert response.status_code == 303
        assert response.headers["location"] == "/"

    token = response.cookies.get(COOKIE_NAME)
    async with client_with_token(token) as client:
        me = await client.get("/auth/me")

    payload = decode_session_token(token)
    assert payload["sub"] == str(casa_admin.id)
    assert "true_sub" not in payload
    assert me.status_code == 200
    assert me.json()["user_id"] == str(casa_admin.id)
    assert me.json()["is_impersonating"] is False

    events = audit_service.list_events(
        db, casa_admin.organization_id, event_type=AuditEventType.IMPERSONATION_STOPPED
    )
    assert [e.target_id for e in events] == [volunteer.id]


@pytest.mark.asyncio
async def test_stop_impersonating_requires_valid_true_user(db, client_for, casa_admin, volunteer):
    async with client_for(volunteer, true_user=casa_admin) as client:
        casa_admin.active = False
        db.commit()
        response = await client.post("/auth/stop-impersonating")

    assert response.status_code == 401
