"""Tests for own-profile and password endpoints."""

import pytest

from casa.core.deps import COOKIE_NAME
from casa.core.security import create_session_token, decode_session_token, verify_password
from casa.db.enums import EmailTemplate
from casa.services import email_service

from conftest import PASSWORD, client_with_token, flash_notice


def _password_emails(db, user):
    return email_service.list_user_emails(db, user.id, EmailTemplate.PASSWORD_CHANGED)


# =============================================================================
# Profile
# =============================================================================

@pytest.mark.asyncio
async def test_profile_update_cannot_deactivate_self(db, client_for, volunteer):
    async with client_for(volunteer) as client:
        response = await client.patch("/users", json={"active": False})

    assert response.status_code == 303
    assert flash_notice(response) == "Profile was successfully updated."
    db.refresh(volunteer)
    assert volunteer.active is True


@pytest.mark.asyncio
async def test_profile_update_changes_allowed_fields(db, client_for, supervisor):
    async with client_for(supervisor) as client:
        response = await client.patch(
            "/users",
            json={"display_name": "  Sam Supervisor ", "phone_number": "+1 555 0100"},
        )

    assert response.status_code == 303
    assert response.headers["location"] == "/users/edit"
    db.refresh(supervisor)
    assert supervisor.display_name == "Sam Supervisor"
    assert supervisor.phone_number == "+1 555 0100"


@pytest.mark.asyncio
async def test_profile_update_blank_name_is_invalid(db, client_for, volunteer):
    original = volunteer.display_name

    async with client_for(volunteer) as client:
        response = await client.patch("/users", json={"display_name": "   "})

    assert response.status_code == 200
    assert response.json() == {"status": "invalid", "errors": {"display_name": ["can't be blank"]}}
    db.refresh(volunteer)
    assert volunteer.display_name == original


@pytest.mark.asyncio
async def test_profile_view_returns_own_user(client_for, volunteer):
    async with client_for(volunteer) as client:
        response = await client.get("/users/edit")

    assert response.status_code == 200
    assert response.json()["id"] == str(volunteer.id)
    assert response.json()["active"] is True


# =============================================================================
# Password
# =============================================================================

@pytest.mark.asyncio
async def test_mismatched_confirmation_changes_nothing(db, client_for, volunteer):
    async with client_for(volunteer) as client:
        response = await client.patch(
            "/users/password",
            json={
                "current_password": PASSWORD,
                "password": "newpassword",
                "password_confirmation": "wrong",
            },
        )

    assert response.status_code == 200
    assert response.json()["errors"] == {"password_confirmation": ["doesn't match Password"]}

    db.refresh(volunteer)
    assert not verify_password("newpassword", volunteer.password_hash)
    assert not verify_password("wrong", volunteer.password_hash)
    assert not verify_password("", volunteer.password_hash)
    assert verify_password(PASSWORD, volunteer.password_hash)
    assert _password_emails(db, volunteer) == []


@pytest.mark.asyncio
async def test_blank_password_is_invalid(db, client_for, volunteer):
    async with client_for(volunteer) as client:
        response = await client.patch(
            "/users/password",
            json={"current_password": PASSWORD, "password": "", "password_confirmation": ""},
        )

    assert response.json()["errors"] == {"password": ["can't be blank"]}
    db.refresh(volunteer)
    assert not verify_password("", volunteer.password_hash)
    assert _password_emails(db, volunteer) == []


@pytest.mark.asyncio
async def test_wrong_current_password_is_invalid(db, client_for, volunteer):
    async with client_for(volunteer) as client:
        response = await client.patch(
            "/users/password",
            json={
                "current_password": "not-my-password",
                "password": "newpassword",
                "password_confirmation": "newpassword",
            },
        )

    assert "current_password" in response.json()["errors"]
    assert _password_emails(db, volunteer) == []


@pytest.mark.asyncio
async def test_short_password_is_invalid(client_for, volunteer):
    async with client_for(volunteer) as client:
        response = await client.patch(
            "/users/password",
            json={"current_password": PASSWORD, "password": "abc", "password_confirmation": "abc"},
        )

    assert response.json()["errors"] == {
        "password": ["is too short (minimum is 6 characters)"]
    }


@pytest.mark.asyncio
async def test_password_change_notifies_and_reissues_session(db, client_for, volunteer):
    old_version = volunteer.token_version

    async with client_for(volunteer) as client:
        response = await client.patch(
            "/users/password",
            json={
                "current_password": PASSWORD,
                "password": "newpassword",
                "password_confirmation": "newpassword",
            },
        )

    assert response.status_code == 303
    assert flash_notice(response) == "Profile was successfully updated."

    db.refresh(volunteer)
    assert verify_password("newpassword", volunteer.password_hash)
    assert volunteer.token_version == old_version + 1
    assert len(_password_emails(db, volunteer)) == 1

    new_token = response.cookies.get(COOKIE_NAME)
    assert new_token
    payload = decode_session_token(new_token)
    assert payload["sub"] == str(volunteer.id)
    assert payload["token_version"] == volunteer.token_version

    # Fresh session keeps working, the old one is revoked
    async with client_with_token(new_token) as client:
        assert (await client.get("/auth/me")).status_code == 200
    async with client_with_token(_stale_token(volunteer, old_version)) as client:
        assert (await client.get("/auth/me")).status_code == 401


@pytest.mark.asyncio
async def test_impersonator_changing_password_keeps_own_session(
    db, client_for, casa_admin, volunteer
):
    async with client_for(volunteer, true_user=casa_admin) as client:
        response = await client.patch(
            "/users/password",
            json={
                "current_password": PASSWORD,
                "password": "newpassword",
                "password_confirmation": "newpassword",
            },
        )
        assert response.status_code == 303
        assert COOKIE_NAME not in response.cookies

        # The impersonating session is still valid and still impersonating
        me = await client.get("/auth/me")
        assert me.status_code == 200
        assert me.json()["user_id"] == str(volunteer.id)
        assert me.json()["true_user_id"] == str(casa_admin.id)

    db.refresh(volunteer)
    assert verify_password("newpassword", volunteer.password_hash)
    emails = _password_emails(db, volunteer)
    assert len(emails) == 1
    assert emails[0].recipient_email == volunteer.email


def _stale_token(user, token_version: int) -> str:
    return create_session_token(
        user_id=user.id,
        org_id=user.organization_id,
        role=user.role,
        token_version=token_version,
    )
